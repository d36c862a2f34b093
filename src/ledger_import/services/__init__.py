"""Import services: candidate preparation, pipeline and progress reporting."""

from ledger_import.services.import_pipeline import (
    ImportPipeline,
    ImportPipelineError,
    ImportResult,
    ImportState,
    ZeroAmountError,
    classify_error,
    pick_cash_or_bank_account,
    resolve_account_id,
)
from ledger_import.services.progress import (
    CompositeProgressObserver,
    LoggingProgressObserver,
    PipelineRunState,
    PipelineStage,
    ProgressEvent,
    ProgressObserver,
    QueueProgressObserver,
    StageStatus,
)
from ledger_import.services.reconciliation import PreparedImport, ReconciliationService

__all__ = [
    "ImportPipeline",
    "ImportPipelineError",
    "ImportResult",
    "ImportState",
    "ZeroAmountError",
    "classify_error",
    "pick_cash_or_bank_account",
    "resolve_account_id",
    "PipelineStage",
    "StageStatus",
    "ProgressEvent",
    "ProgressObserver",
    "PipelineRunState",
    "QueueProgressObserver",
    "LoggingProgressObserver",
    "CompositeProgressObserver",
    "ReconciliationService",
    "PreparedImport",
]
