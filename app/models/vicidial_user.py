"""
vicidial_users の行モデルとリクエスト解析
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterator, Optional, Union

from app.services.error_handler import RequestValidationError

# 生成する全行の vicidial_users.active に書き込む値
ACTIVE_FLAG = 'Y'

# vicidial_users.user は VARCHAR(20): 10進20桁までの非負IDを受け付ける
USER_ID_MIN = 0
USER_ID_MAX = 10 ** 20 - 1

FieldValue = Union[str, int, float]


def _require_object(data: Any, name: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise RequestValidationError(f'{name} must be a JSON object')
    return data


def _scalar(data: Dict[str, Any], key: str, default: FieldValue = '') -> FieldValue:
    value = data.get(key, default)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise RequestValidationError(f'{key} must be a string or a number')
    return value


def _integer(data: Dict[str, Any], key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool):
        raise RequestValidationError(f'{key} must be an integer')
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise RequestValidationError(f'{key} must be an integer')


def _user_id(data: Dict[str, Any], key: str) -> int:
    value = _integer(data, key)
    if not USER_ID_MIN <= value <= USER_ID_MAX:
        raise RequestValidationError(f'{key} must be between {USER_ID_MIN} and {USER_ID_MAX}')
    return value


@dataclass(frozen=True)
class ConnectionProfile:
    """接続先データベースの情報（リクエストの間だけ保持する）"""
    host: str
    user: str
    password: str
    database: str
    socket_path: Optional[str] = None
    port: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any, name: str = 'dbConfig') -> 'ConnectionProfile':
        """
        フォームの接続設定から作成

        Args:
            data: host, user, password, database, socketPath, port を持つ辞書
            name: エラーメッセージに使うリクエスト上の名前
        """
        data = _require_object(data, name)
        for key in ('host', 'user', 'database'):
            value = data.get(key)
            if not isinstance(value, str) or not value.strip():
                raise RequestValidationError(f'{key} is required')

        password = data.get('password') or ''
        if not isinstance(password, str):
            raise RequestValidationError('password must be a string')

        socket_path = data.get('socketPath') or None
        if socket_path is not None and not isinstance(socket_path, str):
            raise RequestValidationError('socketPath must be a string')

        port = _integer(data, 'port') if data.get('port') not in (None, '') else None

        return cls(
            host=data['host'].strip(),
            user=data['user'],
            password=password,
            database=data['database'].strip(),
            socket_path=socket_path,
            port=port,
        )

    def describe(self) -> str:
        """ログ用の接続先表記（認証情報を含まない）"""
        target = self.socket_path or (f'{self.host}:{self.port}' if self.port else self.host)
        return f'{self.user}@{target}/{self.database}'


@dataclass(frozen=True)
class RowTemplate:
    """1回の実行で全行に共通するフィールド値"""
    password: FieldValue = ''
    full_name: FieldValue = ''
    user_level: FieldValue = ''
    user_group: FieldValue = ''
    phone_login: FieldValue = ''
    phone_pass: FieldValue = ''
    pass_hash: FieldValue = ''
    agentcall_manual: FieldValue = ''

    @classmethod
    def from_dict(cls, data: Any) -> 'RowTemplate':
        data = _require_object(data, 'userFields')
        return cls(
            password=_scalar(data, 'pass'),
            full_name=_scalar(data, 'full_name'),
            user_level=_scalar(data, 'user_level'),
            user_group=_scalar(data, 'user_group'),
            phone_login=_scalar(data, 'phone_login'),
            phone_pass=_scalar(data, 'phone_pass'),
            pass_hash=_scalar(data, 'pass_hash'),
            agentcall_manual=_scalar(data, 'agentcall_manual'),
        )


@dataclass(frozen=True)
class IdRange:
    """ユーザーIDの範囲（両端を含む）。end < start の場合は空"""
    start: int
    end: int

    @classmethod
    def from_dict(cls, data: Any, max_users: Optional[int] = None) -> 'IdRange':
        """
        startUserId / endUserId から作成

        各IDは vicidial_users.user に収まる範囲であること、
        max_users を指定した場合は作成件数がその値以下であることを検証する
        """
        data = _require_object(data, 'userFields')
        start = _user_id(data, 'startUserId')
        end = _user_id(data, 'endUserId')

        id_range = cls(start=start, end=end)
        if max_users is not None and id_range.count > max_users:
            raise RequestValidationError(
                f'Cannot create more than {max_users} users in one request (requested {id_range.count})'
            )
        return id_range

    @property
    def count(self) -> int:
        """作成件数（len() と異なり sys.maxsize を超える値も返せる）"""
        return max(self.end - self.start + 1, 0)

    def __len__(self) -> int:
        return self.count

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end + 1))


@dataclass(frozen=True)
class VicidialUserRow:
    """IDとテンプレートから生成した vicidial_users の1行"""
    user: str
    pass_: str
    full_name: str
    user_level: FieldValue
    user_group: FieldValue
    phone_login: str
    phone_pass: FieldValue
    pass_hash: FieldValue
    agentcall_manual: FieldValue
    active: str = ACTIVE_FLAG

    def to_params(self) -> Dict[str, Any]:
        """INSERT文のバインドパラメータ（カラム名をキーとする）"""
        params = asdict(self)
        params['pass'] = params.pop('pass_')
        return params


def build_row(user_id: int, template: RowTemplate) -> VicidialUserRow:
    """
    ユーザーID 1件分の行を生成

    user, phone_login, full_name はすべてIDの10進表記となり、
    テンプレートの full_name と phone_login は使用しない
    """
    user = str(user_id)
    return VicidialUserRow(
        user=user,
        pass_=template.password,
        full_name=user,
        user_level=template.user_level,
        user_group=template.user_group,
        phone_login=user,
        phone_pass=template.phone_pass,
        pass_hash=template.pass_hash,
        agentcall_manual=template.agentcall_manual,
    )
