import json

from .accounts.accounts_loading import AccountSettings
from .models import Email

TEST_ACCOUNT = AccountSettings(
    name="test",
    user="test.user@example.com",
    access_token="",
    provider="test",
)


def load_test_messages(path: str, owner_id: str = TEST_ACCOUNT.name) -> list[Email]:
    with open(path, "r") as f:
        data: list[dict] = json.loads(f.read())

    emails = [Email.model_validate({**item, "owner_id": owner_id}) for item in data]
    for email in emails:
        email.trashed = email.is_trash()
    return emails
