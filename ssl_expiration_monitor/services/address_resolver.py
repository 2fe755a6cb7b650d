"""
地址解析服务
"""
import socket
from typing import List

from ..errors import ResolutionError
from ..models import ResolvedAddress


class AddressResolver:
    """把主机名解析为候选传输地址"""

    def resolve_all(self, host: str, port: int) -> List[ResolvedAddress]:
        """
        解析全部候选地址（保持系统返回的顺序）

        Args:
            host: 主机名或IP
            port: 端口

        Returns:
            List[ResolvedAddress]: 候选地址列表

        Raises:
            ResolutionError: 解析失败
        """
        try:
            entries = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        except (socket.gaierror, UnicodeError) as e:
            raise ResolutionError(host, e) from e

        return [
            ResolvedAddress(family=family, socktype=socktype, proto=proto, sockaddr=sockaddr)
            for family, socktype, proto, _canonname, sockaddr in entries
        ]

    def resolve(self, host: str, port: int) -> ResolvedAddress:
        """
        返回第一个候选地址

        解析结果为空同样视为失败，而不是空结果。
        """
        addresses = self.resolve_all(host, port)
        if not addresses:
            raise ResolutionError(host)
        return addresses[0]
