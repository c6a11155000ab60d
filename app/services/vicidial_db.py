"""
Vicidial の MySQL データベースへのアクセス

実行ごとに NullPool のエンジンを作成するため、
開いた接続がプールされたり他のリクエストと共有されることはない
"""
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection
from sqlalchemy.pool import NullPool

from app.models.vicidial_user import ConnectionProfile, VicidialUserRow

logger = logging.getLogger(__name__)

TARGET_TABLE = 'vicidial_users'

# 利用者の値は必ずバインドパラメータとして渡す
INSERT_USER_SQL = text(
    f"""
    INSERT INTO {TARGET_TABLE} (
        user, pass, full_name, user_level, user_group,
        phone_login, phone_pass, pass_hash, agentcall_manual,
        active
    ) VALUES (
        :user, :pass, :full_name, :user_level, :user_group,
        :phone_login, :phone_pass, :pass_hash, :agentcall_manual,
        :active
    )
    """
)

PING_SQL = text('SELECT 1')


def build_database_url(profile: ConnectionProfile) -> URL:
    """接続情報から SQLAlchemy の URL を作成（PyMySQL ドライバ）"""
    query = {'charset': 'utf8mb4'}
    if profile.socket_path:
        query['unix_socket'] = profile.socket_path

    return URL.create(
        'mysql+pymysql',
        username=profile.user,
        password=profile.password or None,
        host=profile.host,
        port=profile.port,
        database=profile.database,
        query=query,
    )


def open_connection(profile: ConnectionProfile, connect_timeout: int = 10) -> Connection:
    """
    1回の実行で使う接続を開く

    自動コミットモードのため各行は個別に確定し、後続の行が失敗しても
    ロールバックされない。返した接続を閉じるとエンジンも破棄される
    """
    engine = create_engine(
        build_database_url(profile),
        poolclass=NullPool,
        connect_args={'connect_timeout': connect_timeout},
    )
    try:
        connection = engine.connect().execution_options(isolation_level='AUTOCOMMIT')
    except Exception:
        engine.dispose()
        raise

    logger.info(f'Opened database connection to {profile.describe()}')
    return connection


def insert_user(connection: Connection, row: VicidialUserRow) -> None:
    """vicidial_users に1行挿入"""
    connection.execute(INSERT_USER_SQL, row.to_params())


def check_connection(profile: ConnectionProfile, connect_timeout: int = 10) -> None:
    """簡単なクエリで疎通を確認（失敗時は例外を送出）"""
    connection = open_connection(profile, connect_timeout)
    try:
        connection.execute(PING_SQL)
    finally:
        close_connection(connection)


def close_connection(connection: Connection) -> None:
    engine = connection.engine
    try:
        connection.close()
    finally:
        engine.dispose()
