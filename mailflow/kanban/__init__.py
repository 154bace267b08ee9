from .columns import KanbanColumns
from .state_machine import KanbanStateMachine

__all__ = ["KanbanColumns", "KanbanStateMachine"]
