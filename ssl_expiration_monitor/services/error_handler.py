"""
错误处理服务（调用方的重试与错误分类）
"""
import time
from typing import Callable, Any, Dict
from datetime import datetime, timezone
import logging

from ..errors import (
    ProbeError,
    InvalidProbeRequestError,
    ResolutionError,
    ConnectError,
    ConnectTimeoutError,
    InvalidTimeoutError,
    HandshakeError,
    CertificateMissingError,
    CertificateParseError,
)


class NetworkErrorHandler:
    """网络错误处理器"""

    def __init__(self, max_retries: int = 0, base_delay: float = 1.0,
                 sleep: Callable[[float], None] = time.sleep):
        """
        初始化网络错误处理器

        Args:
            max_retries: 最大重试次数，0 表示不重试
            base_delay: 基础延迟时间（秒）
            sleep: 等待函数
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)

        # 可重试的错误类型（瞬时网络问题）
        self.retryable_errors = (
            ConnectError,
            HandshakeError,
        )

        # 不可重试的错误类型
        self.non_retryable_errors = (
            InvalidProbeRequestError,
            InvalidTimeoutError,
            ResolutionError,
            CertificateMissingError,
            CertificateParseError,
        )

    def with_retry(self, func: Callable, *args, **kwargs) -> Any:
        """
        带重试机制执行函数

        Args:
            func: 要执行的函数
            *args: 函数参数
            **kwargs: 函数关键字参数

        Returns:
            Any: 函数执行结果

        Raises:
            ProbeError: 不可重试的错误，或重试次数用尽后的最后一个错误
        """
        for attempt in range(self.max_retries + 1):
            try:
                return func(*args, **kwargs)

            except ProbeError as e:
                if not self.is_retryable_error(e):
                    raise

                if attempt == self.max_retries:
                    if self.max_retries:
                        self.logger.error(f"重试次数用尽，最终失败: {type(e).__name__}: {e}")
                    raise

                # 指数退避
                delay = self.base_delay * (2 ** attempt)

                self.logger.warning(
                    f"尝试 {attempt + 1}/{self.max_retries + 1} 失败: {type(e).__name__}: {e}，"
                    f"{delay:.1f}秒后重试"
                )

                self.sleep(delay)

    def is_retryable_error(self, error: Exception) -> bool:
        """
        判断错误是否可重试

        Args:
            error: 异常对象

        Returns:
            bool: 是否可重试
        """
        if isinstance(error, self.non_retryable_errors):
            return False
        return isinstance(error, self.retryable_errors)

    def handle_probe_error(self, domain: str, error: Exception) -> Dict[str, Any]:
        """
        处理探测错误

        Args:
            domain: 域名
            error: 异常对象

        Returns:
            Dict[str, Any]: 错误处理结果
        """
        error_info = {
            'domain': domain,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'is_retryable': self.is_retryable_error(error),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self._get_suggested_action(error)
        }

        if error_info['is_retryable']:
            self.logger.warning(f"域名 {domain} 探测失败（可重试）: {error_info['error_message']}")
        else:
            self.logger.error(f"域名 {domain} 探测失败（不可重试）: {error_info['error_message']}")

        return error_info

    def _get_suggested_action(self, error: Exception) -> str:
        """
        获取错误的建议处理方案

        Args:
            error: 异常对象

        Returns:
            str: 建议的处理方案
        """
        if isinstance(error, InvalidProbeRequestError):
            return "检查域名和端口配置"
        elif isinstance(error, InvalidTimeoutError):
            return "检查超时配置，需为有限正数"
        elif isinstance(error, ResolutionError):
            return "检查域名是否正确，DNS服务器是否可用"
        elif isinstance(error, ConnectTimeoutError):
            return "检查网络连接，考虑增加超时时间"
        elif isinstance(error, ConnectError):
            return "检查目标服务器是否运行，端口是否正确"
        elif isinstance(error, HandshakeError):
            return "TLS握手失败，检查服务器TLS配置和协议版本"
        elif isinstance(error, (CertificateMissingError, CertificateParseError)):
            return "服务器未提供可读取的证书，检查服务器证书配置"
        else:
            return "检查网络连接和服务器状态"
