"""
服务接口定义
"""
from abc import ABC, abstractmethod
from typing import List
from .models import ProbeRequest, ExpirationResult, ProbeOutcome


class DomainConfigManagerInterface(ABC):
    """域名配置管理器接口"""

    @abstractmethod
    def get_targets(self) -> List[ProbeRequest]:
        """获取探测目标列表"""
        pass

    @abstractmethod
    def validate_domain(self, domain: str) -> bool:
        """验证域名格式"""
        pass


class ExpirationProbeInterface(ABC):
    """证书过期探测器接口"""

    @abstractmethod
    def probe(self, request: ProbeRequest) -> ExpirationResult:
        """探测单个目标的证书剩余有效期，失败时抛出 ProbeError"""
        pass


class NotificationServiceInterface(ABC):
    """告警通知服务接口"""

    @abstractmethod
    def send_expiry_notification(self, outcomes: List[ProbeOutcome]) -> bool:
        """发送证书过期告警"""
        pass

    @abstractmethod
    def format_notification_content(self, outcomes: List[ProbeOutcome]) -> str:
        """格式化通知内容"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_check_start(self, domain_count: int):
        """记录检查开始"""
        pass

    @abstractmethod
    def log_probe_outcome(self, outcome: ProbeOutcome):
        """记录探测结果"""
        pass

    @abstractmethod
    def log_error(self, domain: str, error: Exception):
        """记录错误信息"""
        pass
