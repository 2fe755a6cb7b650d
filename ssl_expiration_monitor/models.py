"""
数据模型定义
"""
import math
import socket
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Tuple, Any

from .errors import ProbeError


DEFAULT_PORT = 443
DEFAULT_TIMEOUT = 30.0
SECONDS_PER_DAY = 86400
# 超时时间上限（秒）
MAX_TIMEOUT = 86400.0

# 探测失败时导出的哨兵值
FAILED_PROBE_DAYS = -1


def is_valid_timeout(timeout) -> bool:
    """超时时间必须是有限正数且不超过 MAX_TIMEOUT（NaN、inf 不合法）"""
    return timeout is not None and math.isfinite(timeout) and 0 < timeout <= MAX_TIMEOUT


@dataclass(frozen=True)
class ProbeRequest:
    """单次探测请求"""
    host: str
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT

    @property
    def label(self) -> str:
        """用于输出和指标标签的域名表示"""
        if self.port == DEFAULT_PORT:
            return self.host
        if ':' in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class ResolvedAddress:
    """解析得到的传输层地址（getaddrinfo 的一项）"""
    family: socket.AddressFamily
    socktype: socket.SocketKind
    proto: int
    sockaddr: Tuple[Any, ...]

    @property
    def ip(self) -> str:
        return self.sockaddr[0]

    @property
    def port(self) -> int:
        return self.sockaddr[1]


@dataclass(frozen=True)
class PeerCertificate:
    """服务器提供的叶子证书，只使用过期时间"""
    not_after: datetime
    der: bytes = field(repr=False, default=b"")


@dataclass(frozen=True)
class ExpirationResult:
    """证书剩余有效期（秒，负数表示已过期）"""
    seconds_until_expiry: int

    @property
    def secs(self) -> int:
        """距离过期的秒数"""
        return self.seconds_until_expiry

    @property
    def days(self) -> int:
        """距离过期的天数，向零取整"""
        whole_days = abs(self.seconds_until_expiry) // SECONDS_PER_DAY
        return whole_days if self.seconds_until_expiry >= 0 else -whole_days

    @property
    def is_expired(self) -> bool:
        """判断是否已过期，恰好为零时视为未过期"""
        return self.seconds_until_expiry < 0


@dataclass
class ProbeOutcome:
    """单个域名的探测结果（成功或失败）"""
    request: ProbeRequest
    result: Optional[ExpirationResult] = None
    error: Optional[ProbeError] = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def domain(self) -> str:
        return self.request.label

    @property
    def ok(self) -> bool:
        return self.result is not None and self.error is None

    @property
    def days(self) -> int:
        """剩余天数，失败时返回 -1"""
        if not self.ok:
            return FAILED_PROBE_DAYS
        return self.result.days

    @property
    def is_expired(self) -> bool:
        return self.ok and self.result.is_expired

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return f"{type(self.error).__name__}: {self.error}"


@dataclass
class CheckResult:
    """检查结果统计"""
    total_domains: int
    successful_checks: int
    failed_checks: int
    expiring_domains: List[ProbeOutcome]
    expired_domains: List[ProbeOutcome]
    errors: List[str]
    execution_time: float
