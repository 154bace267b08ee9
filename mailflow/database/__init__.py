from .mail_db import MailDB, timed_db_call
from .suggestions import SuggestionIndex

__all__ = ["MailDB", "SuggestionIndex", "timed_db_call"]
