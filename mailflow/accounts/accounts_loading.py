from typing import Optional

import yaml
from pydantic import BaseModel


class AccountSettings(BaseModel):
    name: str
    user: str
    access_token: str = ""
    provider: str = "gmail"
    api_base: Optional[str] = None  # overrides the provider's default endpoint

    def __repr__(self):
        return (
            f"AccountSettings(name={self.name}, user={self.user}, "
            f"provider={self.provider}, access_token='***REDACTED***')"
        )

    def __str__(self):
        return self.__repr__()


def load_accounts(path: str) -> dict[str, AccountSettings]:
    with open(path, "r") as f:
        yaml_dict = yaml.safe_load(f) or {}

        return {key: AccountSettings(**val) for key, val in yaml_dict.items()}
