"""
域名配置管理服务
"""
import ipaddress
import os
import re
from typing import List, Optional, Tuple
import logging

from ..interfaces import DomainConfigManagerInterface
from ..models import ProbeRequest, DEFAULT_PORT, DEFAULT_TIMEOUT
from ..settings import DOMAIN_ENV_VAR


class DomainConfigManager(DomainConfigManagerInterface):
    """域名配置管理器实现"""

    def __init__(self, env_var_name: str = DOMAIN_ENV_VAR, timeout: float = DEFAULT_TIMEOUT,
                 domains: Optional[str] = None):
        """
        初始化域名配置管理器

        Args:
            env_var_name: 环境变量名称，默认为"SSL_EXPIRATION_DOMAIN"
            timeout: 每个探测请求的超时时间（秒）
            domains: 直接指定的域名列表（逗号分隔），优先于环境变量
        """
        self.env_var_name = env_var_name
        self.timeout = timeout
        self.domains = domains
        self.logger = logging.getLogger(__name__)

        # 域名格式验证正则表达式
        self.domain_pattern = re.compile(
            r'^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)*'
            r'[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$'
        )

    def _raw_value(self) -> str:
        if self.domains is not None:
            return self.domains
        return os.getenv(self.env_var_name, "")

    def get_domains(self) -> List[str]:
        """
        获取域名标签列表（host 或 host:port）

        Returns:
            List[str]: 域名列表
        """
        return [target.label for target in self.get_targets()]

    def get_targets(self) -> List[ProbeRequest]:
        """
        解析逗号分隔的域名列表为探测请求

        Returns:
            List[ProbeRequest]: 有效的探测目标，无效项会被跳过
        """
        domains_str = self._raw_value()

        if not domains_str.strip():
            self.logger.warning(f"环境变量 {self.env_var_name} 为空")
            return []

        targets = []
        seen = set()
        for raw in domains_str.split(','):
            raw = raw.strip()
            if not raw:
                continue

            parsed = self.parse_target(raw)
            if parsed is None:
                self.logger.warning(f"跳过无效域名: {raw}")
                continue

            host, port = parsed
            if (host, port) in seen:
                continue
            seen.add((host, port))
            targets.append(ProbeRequest(host=host, port=port, timeout=self.timeout))

        if targets:
            self.logger.info(f"成功加载 {len(targets)} 个域名")
        else:
            self.logger.warning("没有找到有效的域名")
        return targets

    def parse_target(self, domain: str) -> Optional[Tuple[str, int]]:
        """
        解析单个目标

        Args:
            domain: 原始域名，如 "https://example.com:8443/path"

        Returns:
            Optional[Tuple[str, int]]: (主机, 端口)，无效时返回 None
        """
        cleaned = self._clean_domain(domain)
        if not cleaned:
            return None

        host, port = cleaned, DEFAULT_PORT
        if cleaned.startswith('['):
            # [IPv6]:port
            closing = cleaned.find(']')
            if closing == -1:
                return None
            host = cleaned[1:closing]
            rest = cleaned[closing + 1:]
            if rest:
                if not rest.startswith(':'):
                    return None
                port = self._parse_port(rest[1:])
        elif cleaned.count(':') == 1:
            host, port_str = cleaned.split(':')
            port = self._parse_port(port_str)

        if port is None or not self.validate_domain(host):
            return None
        return host, port

    def validate_domain(self, domain: str) -> bool:
        """
        验证域名或IP格式

        Args:
            domain: 要验证的域名

        Returns:
            bool: 域名是否有效
        """
        if not domain or not isinstance(domain, str):
            return False

        try:
            ipaddress.ip_address(domain)
            return True
        except ValueError:
            pass

        # 检查长度
        if len(domain) > 253:
            return False

        if domain.startswith('.') or domain.endswith('.'):
            return False

        return bool(self.domain_pattern.match(domain))

    def _parse_port(self, value: str) -> Optional[int]:
        if not value.isdigit():
            return None
        port = int(value)
        return port if 0 < port < 65536 else None

    def _clean_domain(self, domain: str) -> str:
        """
        清理域名格式（移除协议前缀和路径，保留端口）

        Args:
            domain: 原始域名

        Returns:
            str: 清理后的域名
        """
        if not domain:
            return ""

        domain = domain.strip()

        # 移除协议前缀
        if domain.lower().startswith('https://'):
            domain = domain[8:]
        elif domain.lower().startswith('http://'):
            domain = domain[7:]

        # 移除路径部分
        if '/' in domain:
            domain = domain.split('/')[0]

        return domain.strip().lower()
