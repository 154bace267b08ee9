from enum import StrEnum


class EmailStatus(StrEnum):
    inbox = "inbox"
    todo = "todo"
    in_progress = "in_progress"
    done = "done"
    snoozed = "snoozed"
