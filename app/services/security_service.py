"""
セキュリティサービス - 送信元IPアドレスによるアクセス制御とセキュリティイベントログ
許可リストはアプリケーション起動時に一度だけ読み込み、実行中は再読み込みしない
"""

import logging
import json
from datetime import datetime
from typing import Dict, Optional, Any, FrozenSet
from dataclasses import dataclass, field
from flask import Flask, Request, request, g

from app.config import AppConfig

SECURITY_LOGGER_NAME = 'bulk_user_security'

ACCESS_DENIED_BODY = 'Access Denied'


@dataclass(frozen=True)
class AccessGateConfig:
    """アクセス制御設定"""
    allowed_ips: FrozenSet[str] = field(default_factory=frozenset)
    trust_forwarded_for: bool = True

    @classmethod
    def from_app_config(cls, config: AppConfig) -> 'AccessGateConfig':
        """アプリケーション設定から読み込み"""
        return cls(
            allowed_ips=frozenset(config.allowed_ips),
            trust_forwarded_for=config.trust_forwarded_for
        )


class SecurityService:
    """アクセス制御サービス - IP許可リストの判定とセキュリティイベントの記録"""

    def __init__(self, config: AccessGateConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.security_logger = logging.getLogger(SECURITY_LOGGER_NAME)

    def init_app(self, app: Flask):
        """全リクエストに対するアクセス制御フックを登録"""
        app.before_request(self.check_access)

        if not self.config.allowed_ips:
            self.logger.warning("IP許可リストが空です。すべてのリクエストが拒否されます")
        else:
            self.logger.info(f"IP許可リストを読み込みました: {len(self.config.allowed_ips)}件")

    def resolve_client_ip(self, req: Request) -> Optional[str]:
        """
        送信元IPアドレスを判定
        X-Forwarded-For を信頼する場合は先頭のアドレスを使用する
        """
        if self.config.trust_forwarded_for:
            forwarded = req.headers.get('X-Forwarded-For', '')
            first = forwarded.split(',')[0].strip()
            if first:
                return first
        return req.remote_addr or None

    def is_allowed(self, ip_address: Optional[str]) -> bool:
        return bool(ip_address) and ip_address in self.config.allowed_ips

    def check_access(self):
        """before_request フック: 許可されていない送信元は403で拒否"""
        client_ip = self.resolve_client_ip(request)
        g.client_ip = client_ip

        if self.is_allowed(client_ip):
            return None

        self._log_security_event(
            "ACCESS_DENIED",
            f"許可リスト外からのアクセス: {client_ip or 'unknown'}",
            {"ip": client_ip, "path": request.path, "method": request.method}
        )
        return ACCESS_DENIED_BODY, 403, {'Content-Type': 'text/plain; charset=utf-8'}

    def _log_security_event(self, event_type: str, message: str, context: Dict[str, Any]) -> None:
        """セキュリティイベントをログ記録"""
        security_event = {
            "timestamp": datetime.utcnow().isoformat(),
            "event_type": event_type,
            "message": message,
            "context": context,
            "user_agent": request.headers.get('User-Agent', 'unknown')
        }

        self.security_logger.warning(json.dumps(security_event, ensure_ascii=False))

