"""Public interface for the ``expense_classifier`` package.

Re-exports the workflow API, the core components and the data models. There
is no runtime logic here, only symbol re-exports.
"""

from .api import (
    classify_transactions,
    confirm_transaction,
    load_transactions,
    open_learning_store,
)
from .categories import EXPENSE_CATEGORIES, ExpenseCategory, category_name
from .classify import ClassifierPolicy, ExpenseClassifier, classify_expense
from .dates import normalize_date
from .errors import EncodingError, IngestError, ParseError
from .export import export_csv, write_csv
from .ingest import CSVIngestor, IngestReport, RowExtractor
from .learning import (
    InMemoryLearningRepository,
    JsonFileLearningRepository,
    LearningRepository,
    LearningSnapshot,
    LearningStore,
)
from .memos import MemoGenerator, MemoRule
from .models import (
    ClassificationResult,
    LearningRecord,
    LearningStats,
    MerchantLearningDetail,
    NormalizedTransaction,
    Transaction,
    confirmed_only,
)

__all__ = [
    # API
    "classify_transactions",
    "confirm_transaction",
    "load_transactions",
    "open_learning_store",
    # Components
    "CSVIngestor",
    "ExpenseClassifier",
    "ClassifierPolicy",
    "InMemoryLearningRepository",
    "JsonFileLearningRepository",
    "LearningRepository",
    "LearningSnapshot",
    "LearningStore",
    "MemoGenerator",
    "MemoRule",
    "RowExtractor",
    "classify_expense",
    "export_csv",
    "normalize_date",
    "write_csv",
    # Lookup tables
    "EXPENSE_CATEGORIES",
    "ExpenseCategory",
    "category_name",
    # Errors
    "EncodingError",
    "IngestError",
    "ParseError",
    # Models
    "ClassificationResult",
    "IngestReport",
    "LearningRecord",
    "LearningStats",
    "MerchantLearningDetail",
    "NormalizedTransaction",
    "Transaction",
    "confirmed_only",
]
