from .email import TRASH_LABEL, Email, EmailView
from .kanban import (
    Card,
    ColumnMeta,
    CreateColumnRequest,
    KanbanColumn,
    KanbanColumnSQL,
    MoveRequest,
    ReorderColumnsRequest,
    SnoozeRequest,
    SummarizeRequest,
    UpdateColumnRequest,
)
from .search import (
    EmbeddingBackfill,
    GenerateEmbeddingsRequest,
    RemotePage,
    RemoteStub,
    ScoredEmail,
    SearchHit,
    SearchPage,
    SearchResponse,
    SearchResult,
    SearchSource,
    SemanticSearchRequest,
    SemanticSearchResponse,
    Suggestion,
    SuggestionsResponse,
)
from .statistics import (
    DEFAULT_PERIOD,
    PERIOD_DAYS,
    ActivitySlot,
    MailboxStatistics,
    StatisticsPeriod,
    StatusCount,
    TopSender,
    TrendPoint,
    parse_period,
)
from .status import EmailStatus

__all__ = [
    "TRASH_LABEL",
    "Email",
    "EmailView",
    "EmailStatus",
    "Card",
    "ColumnMeta",
    "CreateColumnRequest",
    "KanbanColumn",
    "KanbanColumnSQL",
    "MoveRequest",
    "ReorderColumnsRequest",
    "SnoozeRequest",
    "SummarizeRequest",
    "UpdateColumnRequest",
    "EmbeddingBackfill",
    "GenerateEmbeddingsRequest",
    "RemotePage",
    "RemoteStub",
    "ScoredEmail",
    "SearchHit",
    "SearchPage",
    "SearchResponse",
    "SearchResult",
    "SearchSource",
    "SemanticSearchRequest",
    "SemanticSearchResponse",
    "Suggestion",
    "SuggestionsResponse",
    "DEFAULT_PERIOD",
    "PERIOD_DAYS",
    "ActivitySlot",
    "MailboxStatistics",
    "StatisticsPeriod",
    "StatusCount",
    "TopSender",
    "TrendPoint",
    "parse_period",
]
