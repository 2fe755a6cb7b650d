"""
带超时的TCP连接服务
"""
import socket

from ..errors import ConnectError, ConnectTimeoutError, InvalidTimeoutError
from ..models import ResolvedAddress, MAX_TIMEOUT, is_valid_timeout


class TimedConnector:
    """在给定超时时间内建立TCP连接"""

    def connect(self, address: ResolvedAddress, timeout: float, domain: str = "") -> socket.socket:
        """
        连接到解析出的地址

        settimeout 同时约束 connect、读和写，握手阶段的读写超时与连接超时一致。

        Args:
            address: 解析出的地址
            timeout: 超时时间（秒），有限正数且不超过 MAX_TIMEOUT
            domain: 用于错误信息的域名

        Returns:
            socket.socket: 已连接的套接字，由调用方负责关闭

        Raises:
            ConnectTimeoutError: 超时，或超时参数非法（InvalidTimeoutError）
            ConnectError: 其他连接错误
        """
        domain = domain or address.ip
        if not is_valid_timeout(timeout):
            raise InvalidTimeoutError(domain, f"timeout must be a finite number in (0, {MAX_TIMEOUT}], got {timeout!r}")

        try:
            sock = socket.socket(address.family, address.socktype, address.proto)
        except OSError as e:
            raise ConnectError(domain, "failed to create socket", e) from e

        try:
            sock.settimeout(timeout)
        except (ValueError, OverflowError) as e:
            sock.close()
            raise InvalidTimeoutError(domain, f"timeout rejected by socket: {timeout!r}", e) from e

        try:
            sock.connect(address.sockaddr)
        except socket.timeout as e:
            sock.close()
            raise ConnectTimeoutError(
                domain, f"connection to {address.ip}:{address.port} timed out after {timeout}s", e
            ) from e
        except OSError as e:
            sock.close()
            raise ConnectError(domain, f"connection to {address.ip}:{address.port} failed", e) from e

        return sock
