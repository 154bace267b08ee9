from fastapi import APIRouter

from ..app_context import AppContext, Application

router = APIRouter(tags=["Accounts"])


@router.get("/accounts", response_model=list[dict])
def list_accounts():
    """
    Lists configured accounts.
    """
    context: AppContext = Application.get_current_context()

    return [
        {
            "account_id": key,
            "name": settings.name,
            "user": settings.user,
            "provider": settings.provider,
        }
        for key, settings in context.accounts.items()
    ]
