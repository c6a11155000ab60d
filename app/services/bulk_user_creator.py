"""
一括ユーザー作成の実行処理
IDごとに1行を挿入し、結果を1行ずつのイベントとして順に返す
"""
from dataclasses import dataclass
from typing import Callable, Dict, Any, Iterator, Optional
import json
import logging
import threading
import time

from app.models.vicidial_user import ConnectionProfile, RowTemplate, IdRange, build_row
from app.services.error_handler import (
    BulkUserErrorHandler, ErrorCategory, ErrorSeverity, describe_db_error
)
from app.services import vicidial_db
from app.newrelic_utils import record_run_summary


@dataclass(frozen=True)
class OutcomeEvent:
    """ストリームの1行分のイベント"""
    type: str
    message: Optional[str] = None
    progress: Optional[int] = None

    PROGRESS = 'progress'
    SUCCESS = 'success'
    ERROR = 'error'
    COMPLETE = 'complete'

    @classmethod
    def success(cls, message: str) -> 'OutcomeEvent':
        return cls(cls.SUCCESS, message=message)

    @classmethod
    def error(cls, message: str) -> 'OutcomeEvent':
        return cls(cls.ERROR, message=message)

    @classmethod
    def complete(cls, message: str) -> 'OutcomeEvent':
        return cls(cls.COMPLETE, message=message)

    @classmethod
    def at_progress(cls, percent: int) -> 'OutcomeEvent':
        return cls(cls.PROGRESS, progress=percent)

    def to_dict(self) -> Dict[str, Any]:
        if self.type == self.PROGRESS:
            return {'type': self.type, 'progress': self.progress}
        return {'type': self.type, 'message': self.message}

    def to_line(self) -> str:
        """改行で終わるコンパクトなJSON"""
        return json.dumps(self.to_dict(), separators=(',', ':'), ensure_ascii=False) + '\n'


@dataclass
class RunSummary:
    """1回の実行の集計結果"""
    start_id: int
    end_id: int
    total: int
    created_count: int = 0
    error_count: int = 0
    cancelled: bool = False
    execution_time: float = 0.0

    def completion_message(self) -> str:
        return f'{self.created_count} users created successfully, {self.error_count} errors'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_id': self.start_id,
            'end_id': self.end_id,
            'total': self.total,
            'created_count': self.created_count,
            'error_count': self.error_count,
            'cancelled': self.cancelled,
            'execution_time': self.execution_time,
        }


def progress_percent(done: int, total: int) -> int:
    """round(100 * done / total) を0.5切り上げで計算"""
    return (200 * done + total) // (2 * total)


class RowRateLimiter:
    """連続する挿入の間隔を min_interval 秒以上に保つ"""

    def __init__(self, min_interval: float, clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.min_interval = max(min_interval, 0.0)
        self._clock = clock
        self._sleep = sleep
        self._last = None

    def wait(self):
        if self.min_interval and self._last is not None:
            remaining = self.min_interval - (self._clock() - self._last)
            if remaining > 0:
                self._sleep(remaining)
        self._last = self._clock()


class BulkUserCreator:
    """IDごとに vicidial_users へ1行挿入し、結果を逐次報告するクラス"""

    def __init__(self, row_interval: float = 0.05, connect_timeout: int = 10,
                 connection_factory: Callable = None, error_handler: BulkUserErrorHandler = None):
        self.row_interval = row_interval
        self.connect_timeout = connect_timeout
        self.connection_factory = connection_factory or vicidial_db.open_connection
        self.logger = logging.getLogger(__name__)
        self.error_handler = error_handler or BulkUserErrorHandler(self.logger)

    def stream_run(self, profile: ConnectionProfile, template: RowTemplate, id_range: IdRange,
                   cancel_event: Optional[threading.Event] = None) -> Iterator[OutcomeEvent]:
        """
        一括作成を1回実行し、イベントを順に返す

        接続に失敗した場合はエラーイベントを1件返して終了し、完了イベントは返さない。
        行の挿入に失敗した場合はエラーイベントを返して次のIDへ進む。
        呼び出し側が途中で反復をやめた場合も接続は必ず閉じる
        """
        start_time = time.time()
        summary = RunSummary(start_id=id_range.start, end_id=id_range.end, total=id_range.count)

        self.logger.info(
            f'Bulk user creation started: ids {id_range.start}-{id_range.end} '
            f'({summary.total} users) on {profile.describe()}'
        )

        try:
            connection = self.connection_factory(profile, self.connect_timeout)
        except Exception as e:
            self.error_handler.record(
                e, ErrorCategory.CONNECTION, ErrorSeverity.HIGH,
                {'target': profile.describe()}
            )
            yield OutcomeEvent.error(f'Database connection failed: {describe_db_error(e)}')
            return

        rate_limiter = RowRateLimiter(self.row_interval)
        try:
            for done, user_id in enumerate(id_range, start=1):
                if cancel_event is not None and cancel_event.is_set():
                    summary.cancelled = True
                    self.logger.warning(f'Bulk user creation abandoned by client before user {user_id}')
                    break

                rate_limiter.wait()
                row = build_row(user_id, template)
                try:
                    vicidial_db.insert_user(connection, row)
                except Exception as e:
                    summary.error_count += 1
                    error_detail = self.error_handler.record(
                        e, ErrorCategory.ROW_INSERT, ErrorSeverity.MEDIUM, {'user_id': user_id}
                    )
                    outcome = OutcomeEvent.error(f'User {user_id}: {error_detail.message}')
                else:
                    summary.created_count += 1
                    outcome = OutcomeEvent.success(f'User {user_id} ({row.full_name}) created')

                yield outcome

                yield OutcomeEvent.at_progress(progress_percent(done, summary.total))
        except GeneratorExit:
            summary.cancelled = True
            self.logger.warning('Bulk user creation stream closed before completion')
            raise
        finally:
            try:
                vicidial_db.close_connection(connection)
            except Exception as e:
                self.logger.warning(f'Failed to close database connection: {describe_db_error(e)}')
            summary.execution_time = time.time() - start_time
            self._report(summary)

        if not summary.cancelled:
            yield OutcomeEvent.complete(summary.completion_message())

    def _report(self, summary: RunSummary):
        """実行結果をログとNew Relicに記録"""
        self.logger.info(
            f'Bulk user creation finished: created={summary.created_count}, '
            f'errors={summary.error_count}, cancelled={summary.cancelled}, '
            f'time={summary.execution_time:.2f}s'
        )
        record_run_summary(summary.to_dict())
