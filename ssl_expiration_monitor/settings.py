"""
运行配置（环境变量）
"""
import math
import os
from dataclasses import dataclass
from typing import Optional, List

from .errors import ConfigurationError, MissingDomainConfigurationError
from .models import MAX_TIMEOUT, is_valid_timeout


DOMAIN_ENV_VAR = "SSL_EXPIRATION_DOMAIN"

DEFAULT_TIMEOUT = 30.0
DEFAULT_ALERT_DAYS = 22
DEFAULT_MAX_RETRIES = 0
DEFAULT_CACHE_TTL = 86400.0
DEFAULT_WORKERS = 10
DEFAULT_EXPORTER_HOST = "0.0.0.0"
DEFAULT_EXPORTER_PORT = 8080
DEFAULT_LOG_LEVEL = "INFO"

# 数值型环境变量 -> (字段名, 类型, 默认值)
NUMERIC_ENV_VARS = {
    "SSL_EXPIRATION_TIMEOUT": ("timeout", float, DEFAULT_TIMEOUT),
    "SSL_EXPIRATION_ALERT_DAYS": ("alert_days", int, DEFAULT_ALERT_DAYS),
    "SSL_EXPIRATION_MAX_RETRIES": ("max_retries", int, DEFAULT_MAX_RETRIES),
    "SSL_EXPIRATION_CACHE_TTL": ("cache_ttl", float, DEFAULT_CACHE_TTL),
    "SSL_EXPIRATION_WORKERS": ("workers", int, DEFAULT_WORKERS),
    "EXPORTER_PORT": ("exporter_port", int, DEFAULT_EXPORTER_PORT),
}


@dataclass
class MonitorSettings:
    domains: str
    timeout: float = DEFAULT_TIMEOUT
    alert_days: int = DEFAULT_ALERT_DAYS
    max_retries: int = DEFAULT_MAX_RETRIES
    cache_ttl: float = DEFAULT_CACHE_TTL
    workers: int = DEFAULT_WORKERS
    exporter_host: str = DEFAULT_EXPORTER_HOST
    exporter_port: int = DEFAULT_EXPORTER_PORT
    sns_topic_arn: Optional[str] = None
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, domains: Optional[str] = None) -> "MonitorSettings":
        """
        从环境变量加载配置

        Args:
            domains: 覆盖 SSL_EXPIRATION_DOMAIN 的域名列表（逗号分隔）

        Raises:
            MissingDomainConfigurationError: 未配置域名
            ConfigurationError: 数值格式错误或超出范围
        """
        domains = domains if domains is not None else os.getenv(DOMAIN_ENV_VAR, "")
        if not domains.strip():
            raise MissingDomainConfigurationError(f"Couldn't read {DOMAIN_ENV_VAR}")

        numbers = {
            field: _env_number(name, default, cast)
            for name, (field, cast, default) in NUMERIC_ENV_VARS.items()
        }
        settings = cls(
            domains=domains,
            exporter_host=os.getenv("EXPORTER_HOST", DEFAULT_EXPORTER_HOST),
            sns_topic_arn=os.getenv("SNS_TOPIC_ARN") or None,
            log_level=os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL),
            **numbers,
        )
        settings.validate()
        return settings

    def validation_errors(self) -> List[str]:
        """
        检查数值配置的取值范围

        Returns:
            List[str]: 错误信息，合法时为空
        """
        errors = []
        if not is_valid_timeout(self.timeout):
            errors.append(f"SSL_EXPIRATION_TIMEOUT must be a finite number in (0, {MAX_TIMEOUT}], got {self.timeout}")
        if self.alert_days < 0:
            errors.append(f"SSL_EXPIRATION_ALERT_DAYS must not be negative, got {self.alert_days}")
        if self.max_retries < 0:
            errors.append(f"SSL_EXPIRATION_MAX_RETRIES must not be negative, got {self.max_retries}")
        if not math.isfinite(self.cache_ttl) or self.cache_ttl < 0:
            errors.append(f"SSL_EXPIRATION_CACHE_TTL must be a finite non-negative number, got {self.cache_ttl}")
        if self.workers < 1:
            errors.append(f"SSL_EXPIRATION_WORKERS must be at least 1, got {self.workers}")
        if not 0 < self.exporter_port < 65536:
            errors.append(f"EXPORTER_PORT out of range: {self.exporter_port}")
        return errors

    def validate(self):
        errors = self.validation_errors()
        if errors:
            raise ConfigurationError(errors[0])


def _env_number(name: str, default, cast):
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} is not a valid {cast.__name__}: {raw!r}") from e
