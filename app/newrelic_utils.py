"""
New Relic統合ユーティリティ
リクエスト属性と一括作成の実行結果をNew Relicに記録する
"""

import newrelic.agent
import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

RUN_EVENT_TYPE = 'BulkUserRun'


def set_request_attributes(client_ip: Optional[str]):
    """
    リクエスト元の情報をCustom Attributeとして設定

    Args:
        client_ip (Optional[str]): アクセス制御で判定したクライアントIP
    """
    try:
        if client_ip:
            newrelic.agent.add_custom_attribute('client.ip', client_ip)
        newrelic.agent.add_custom_attribute('service_name', 'vicidial-user-creator')
    except Exception as e:
        logger.error(f"Failed to set request custom attributes: {e}")


def record_run_summary(summary: Dict[str, Any]):
    """
    一括作成の結果をカスタムイベントとして記録

    Args:
        summary (Dict[str, Any]): RunSummary.to_dict() の結果
    """
    try:
        params = {
            key: value if isinstance(value, (str, int, float, bool)) else str(value)
            for key, value in summary.items()
        }
        newrelic.agent.record_custom_event(RUN_EVENT_TYPE, params)
        logger.debug(f"Custom event recorded: {RUN_EVENT_TYPE}")
    except Exception as e:
        logger.error(f"Failed to record run summary: {e}")
