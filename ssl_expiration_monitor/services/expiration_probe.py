"""
SSL证书过期探测服务

解析 -> 连接 -> 握手 -> 提取证书 -> 计算剩余时间，任一阶段失败都直接抛出对应的
ProbeError，不重试也不记录日志，重试和告警策略由调用方决定。
"""
from datetime import datetime
from typing import Callable, Optional

from ..errors import ProbeError, InvalidProbeRequestError, InvalidTimeoutError
from ..interfaces import ExpirationProbeInterface
from ..models import (
    ProbeRequest, ExpirationResult, ProbeOutcome, DEFAULT_PORT, DEFAULT_TIMEOUT, MAX_TIMEOUT, is_valid_timeout,
)
from .address_resolver import AddressResolver
from .timed_connector import TimedConnector
from .handshake_probe import HandshakeProbe
from .expiry_calculator import ExpiryCalculator


class SSLExpirationProbe(ExpirationProbeInterface):
    """证书过期探测器实现"""

    def __init__(self,
                 resolver: Optional[AddressResolver] = None,
                 connector: Optional[TimedConnector] = None,
                 handshake: Optional[HandshakeProbe] = None,
                 calculator: Optional[ExpiryCalculator] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        初始化探测器

        Args:
            resolver: 地址解析器
            connector: 连接器
            handshake: 握手探测器
            calculator: 过期计算器
            clock: 返回当前时间的函数，None表示使用当前UTC时间
        """
        self.resolver = resolver or AddressResolver()
        self.connector = connector or TimedConnector()
        self.handshake = handshake or HandshakeProbe()
        self.calculator = calculator or ExpiryCalculator()
        self.clock = clock

    def probe(self, request: ProbeRequest) -> ExpirationResult:
        """
        探测单个目标

        Args:
            request: 探测请求

        Returns:
            ExpirationResult: 剩余有效期

        Raises:
            ProbeError: 任一阶段失败
        """
        self._validate_request(request)

        address = self.resolver.resolve(request.host, request.port)

        # 套接字在握手成功或失败后都会关闭
        with self.connector.connect(address, request.timeout, domain=request.host) as sock:
            certificate = self.handshake.fetch_certificate(sock, request.host)

        now = self.clock() if self.clock else None
        return self.calculator.calculate(certificate.not_after, now)

    def probe_outcome(self, request: ProbeRequest) -> ProbeOutcome:
        """探测并把结果或错误包装为 ProbeOutcome"""
        try:
            return ProbeOutcome(request=request, result=self.probe(request))
        except ProbeError as e:
            return ProbeOutcome(request=request, error=e)

    def _validate_request(self, request: ProbeRequest):
        if not request.host or not request.host.strip():
            raise InvalidProbeRequestError(request.host or "", "host must not be empty")
        if not 0 < request.port < 65536:
            raise InvalidProbeRequestError(request.host, f"port out of range: {request.port}")
        if not is_valid_timeout(request.timeout):
            raise InvalidTimeoutError(
                request.host, f"timeout must be a finite number in (0, {MAX_TIMEOUT}], got {request.timeout!r}"
            )


def probe(host: str, port: int = DEFAULT_PORT, timeout: float = DEFAULT_TIMEOUT) -> ExpirationResult:
    """
    探测 host:port 的证书剩余有效期

    Example:
        >>> expiration = probe("google.com")
        >>> if expiration.days < 14:
        ...     notify()
    """
    return SSLExpirationProbe().probe(ProbeRequest(host=host, port=port, timeout=timeout))
