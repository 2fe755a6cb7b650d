"""
探测错误类型定义
"""
from typing import Optional


class ProbeError(Exception):
    """证书过期探测失败的基类"""

    def __init__(self, domain: str, message: str, cause: Optional[BaseException] = None):
        """
        Args:
            domain: 目标域名
            message: 错误描述
            cause: 底层异常（可选）
        """
        self.domain = domain
        self.cause = cause
        detail = f"{message}: {cause}" if cause is not None else message
        super().__init__(detail)


class InvalidProbeRequestError(ProbeError, ValueError):
    """探测请求参数无效（空主机名、端口越界）"""


class ResolutionError(ProbeError):
    """主机名无法解析出任何地址"""

    def __init__(self, domain: str, cause: Optional[BaseException] = None):
        super().__init__(domain, f"Couldn't resolve any address from domain: {domain}", cause)


class ConnectError(ProbeError):
    """无法建立TCP连接"""


class ConnectTimeoutError(ConnectError):
    """在超时时间内未能建立连接"""


class InvalidTimeoutError(ConnectTimeoutError):
    """超时参数不是有限正数，连接前即失败"""


class HandshakeError(ProbeError):
    """TLS握手失败"""

    def __init__(self, domain: str, cause: Optional[BaseException] = None):
        super().__init__(domain, f"HandshakeError with {domain}", cause)


class CertificateMissingError(ProbeError):
    """握手成功但服务器未提供证书"""

    def __init__(self, domain: str):
        super().__init__(domain, "Certificate not found")


class CertificateParseError(ProbeError):
    """证书内容无法解析"""


class ConfigurationError(Exception):
    """配置错误"""


class MissingDomainConfigurationError(ConfigurationError):
    """缺少域名配置"""
