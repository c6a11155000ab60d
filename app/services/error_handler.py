"""
エラーハンドリングとログ機能
接続エラー（実行全体が失敗）と行単位の挿入エラー（処理継続）を区別して記録する
"""
import logging
import traceback
import uuid
from typing import Dict, Any
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import json

from sqlalchemy.exc import DBAPIError


class RequestValidationError(ValueError):
    """リクエスト内容が不正な場合のエラー（ストリーム開始前に400で返す）"""


class ErrorSeverity(Enum):
    """エラーの重要度レベル"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ErrorCategory(Enum):
    """エラーカテゴリ"""
    CONNECTION = "connection"
    ROW_INSERT = "row_insert"
    VALIDATION = "validation"


@dataclass
class ErrorDetail:
    """詳細エラー情報"""
    error_id: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    exception_type: str
    stack_trace: str
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    is_recoverable: bool = True


def describe_db_error(exception: Exception) -> str:
    """
    データベースエラーから利用者向けのメッセージを取り出す

    SQLAlchemyの例外はSQL文やパラメータを含むため、元のDBAPI例外の
    メッセージ（例: "Duplicate entry '1000' for key 'user'"）だけを返す
    """
    if isinstance(exception, DBAPIError) and exception.orig is not None:
        orig = exception.orig
        args = getattr(orig, 'args', ())
        # PyMySQLの例外は (エラーコード, メッセージ) の形式
        if len(args) >= 2 and isinstance(args[0], int):
            return str(args[1])
        return str(orig)
    return str(exception)


class BulkUserErrorHandler:
    """一括ユーザー作成のエラーハンドリングクラス"""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)

    def create_error_detail(
        self,
        exception: Exception,
        category: ErrorCategory,
        severity: ErrorSeverity,
        context: Dict[str, Any] = None
    ) -> ErrorDetail:
        """詳細エラー情報を作成"""
        return ErrorDetail(
            error_id=str(uuid.uuid4())[:8],
            category=category,
            severity=severity,
            message=describe_db_error(exception),
            exception_type=type(exception).__name__,
            stack_trace=traceback.format_exc(),
            context=context or {},
            # 行単位のエラーのみ次の行に進めるため回復可能として扱う
            is_recoverable=category == ErrorCategory.ROW_INSERT
        )

    def log_error(self, error_detail: ErrorDetail):
        """エラーをログに記録"""
        log_message = (
            f"[{error_detail.error_id}] {error_detail.category.value.upper()} ERROR "
            f"({error_detail.severity.value}): {error_detail.message}"
        )

        if error_detail.context:
            log_message += f" | Context: {json.dumps(error_detail.context, ensure_ascii=False)}"

        if error_detail.severity == ErrorSeverity.HIGH:
            self.logger.error(log_message)
            self.logger.debug(f"[{error_detail.error_id}] Stack trace:\n{error_detail.stack_trace}")
        elif error_detail.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(log_message)
        else:
            self.logger.info(log_message)

    def record(
        self,
        exception: Exception,
        category: ErrorCategory,
        severity: ErrorSeverity,
        context: Dict[str, Any] = None
    ) -> ErrorDetail:
        """エラー詳細を作成してログに記録する"""
        error_detail = self.create_error_detail(exception, category, severity, context)
        self.log_error(error_detail)
        return error_detail
