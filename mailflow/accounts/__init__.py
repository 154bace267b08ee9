from .accounts_loading import AccountSettings, load_accounts

__all__ = ["AccountSettings", "load_accounts"]
