"""
Application configuration loaded from environment variables
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def _split_ips(raw: str) -> List[str]:
    return [ip.strip() for ip in raw.split(',') if ip.strip()]


@dataclass
class AppConfig:
    """Settings read once when the application is created"""
    secret_key: str = 'dev-secret-key-change-in-production'

    # Access gate
    allowed_ips: List[str] = field(default_factory=list)
    trust_forwarded_for: bool = True

    # Bulk creation
    row_interval_seconds: float = 0.05
    max_users_per_request: int = 1000
    db_connect_timeout: int = 10

    # Logging
    log_level: str = 'INFO'
    security_log_file: Optional[str] = None

    # Form defaults
    default_db_host: str = 'localhost'
    default_db_user: str = ''
    default_db_name: str = 'asterisk'
    default_db_socket: str = '/var/run/mysql/mysql.sock'

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Build the configuration from environment variables"""
        return cls(
            secret_key=os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production'),
            allowed_ips=_split_ips(os.getenv('ALLOWED_IPS', '')),
            trust_forwarded_for=_env_bool('TRUST_FORWARDED_FOR', 'true'),
            row_interval_seconds=float(os.getenv('ROW_INTERVAL_SECONDS', '0.05')),
            max_users_per_request=int(os.getenv('MAX_USERS_PER_REQUEST', '1000')),
            db_connect_timeout=int(os.getenv('DB_CONNECT_TIMEOUT', '10')),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            security_log_file=os.getenv('SECURITY_LOG_FILE') or None,
            default_db_host=os.getenv('DEFAULT_DB_HOST', 'localhost'),
            default_db_user=os.getenv('DEFAULT_DB_USER', ''),
            default_db_name=os.getenv('DEFAULT_DB_NAME', 'asterisk'),
            default_db_socket=os.getenv('DEFAULT_DB_SOCKET', '/var/run/mysql/mysql.sock'),
        )

    def form_defaults(self) -> dict:
        """Initial values for the connection form"""
        return {
            'host': self.default_db_host,
            'user': self.default_db_user,
            'password': '',
            'database': self.default_db_name,
            'socketPath': self.default_db_socket,
        }
