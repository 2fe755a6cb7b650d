"""
定时检查入口（AWS Lambda）
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone

from .errors import ProbeError, ConfigurationError
from .interfaces import ExpirationProbeInterface, NotificationServiceInterface
from .models import ProbeRequest, ProbeOutcome, CheckResult
from .settings import MonitorSettings
from .services.domain_config import DomainConfigManager
from .services.expiration_probe import SSLExpirationProbe
from .services.error_handler import NetworkErrorHandler
from .services.sns_notification import create_notification_service
from .services.logger import LoggerService
from .services.expiry_calculator import ExpiryCalculator


class SSLExpirationMonitor:
    """多域名证书过期监控"""

    def __init__(self, settings: MonitorSettings,
                 probe: Optional[ExpirationProbeInterface] = None,
                 notification_service: Optional[NotificationServiceInterface] = None):
        """
        初始化监控器

        Args:
            settings: 运行配置
            probe: 探测器，默认 SSLExpirationProbe
            notification_service: 告警通知，默认根据 SNS_TOPIC_ARN 选择
        """
        self.settings = settings
        self.logger_service = LoggerService(log_level=settings.log_level, warning_days=settings.alert_days)
        self.domain_manager = DomainConfigManager(timeout=settings.timeout, domains=settings.domains)
        self.probe = probe or SSLExpirationProbe()
        self.error_handler = NetworkErrorHandler(max_retries=settings.max_retries)
        self.notification_service = notification_service or create_notification_service(
            settings.sns_topic_arn, warning_days=settings.alert_days
        )
        self.expiry_calculator = ExpiryCalculator(warning_days=settings.alert_days)

        self._log_configuration()

    def _log_configuration(self):
        """记录系统配置信息"""
        self.logger_service.log_configuration_info({
            'domains': self.settings.domains,
            'timeout': self.settings.timeout,
            'alert_days': self.settings.alert_days,
            'max_retries': self.settings.max_retries,
            'workers': self.settings.workers,
            'sns_topic_arn': self.settings.sns_topic_arn or '',
            'log_level': self.settings.log_level
        })

    def check(self, request: ProbeRequest) -> ProbeOutcome:
        """
        检查单个目标，错误包装在结果里而不是抛出

        Args:
            request: 探测请求

        Returns:
            ProbeOutcome: 探测结果
        """
        try:
            result = self.error_handler.with_retry(self.probe.probe, request)
            return ProbeOutcome(request=request, result=result)
        except ProbeError as e:
            self.error_handler.handle_probe_error(request.label, e)
            return ProbeOutcome(request=request, error=e)

    def check_all(self, targets: List[ProbeRequest]) -> List[ProbeOutcome]:
        """
        并发检查多个目标，结果顺序与输入一致

        Args:
            targets: 探测目标列表

        Returns:
            List[ProbeOutcome]: 探测结果列表
        """
        if not targets:
            return []

        workers = max(1, min(self.settings.workers, len(targets)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(self.check, targets))

        for outcome in outcomes:
            self.logger_service.log_probe_outcome(outcome)
        return outcomes

    def execute(self) -> CheckResult:
        """
        执行SSL证书检查

        Returns:
            CheckResult: 检查结果
        """
        start_time = datetime.now(timezone.utc)

        targets = self.domain_manager.get_targets()

        if not targets:
            self.logger_service.logger.warning("没有找到要检查的域名")
            return CheckResult(
                total_domains=0,
                successful_checks=0,
                failed_checks=0,
                expiring_domains=[],
                expired_domains=[],
                errors=["没有找到要检查的域名"],
                execution_time=0.0
            )

        self.logger_service.log_check_start(len(targets))

        outcomes = self.check_all(targets)
        categorized = self.expiry_calculator.categorize_certificates(outcomes)

        self.send_alerts(categorized['expired'] + categorized['expiring_soon'])

        self.logger_service.log_check_end()
        self.logger_service.log_execution_summary()

        execution_time = (datetime.now(timezone.utc) - start_time).total_seconds()

        return CheckResult(
            total_domains=len(targets),
            successful_checks=categorized['successful'],
            failed_checks=categorized['failed'],
            expiring_domains=categorized['expiring_soon'],
            expired_domains=categorized['expired'],
            errors=[outcome.error_message for outcome in outcomes if outcome.error_message],
            execution_time=execution_time
        )

    def send_alerts(self, alert_outcomes: List[ProbeOutcome]) -> bool:
        """
        发送告警

        Args:
            alert_outcomes: 已过期或即将过期的探测结果

        Returns:
            bool: 通知是否发送成功
        """
        if not alert_outcomes:
            self.logger_service.logger.info("所有证书状态正常，无需发送通知")
            return True

        notification_type = type(self.notification_service).__name__
        sent = self.notification_service.send_expiry_notification(alert_outcomes)
        self.logger_service.log_notification_sent(notification_type, len(alert_outcomes), sent)
        return sent


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda函数入口点

    Args:
        event: EventBridge触发事件，可用 "domains" 覆盖环境变量
        context: Lambda运行时上下文

    Returns:
        dict: 执行结果和统计信息
    """
    try:
        settings = MonitorSettings.from_env(domains=(event or {}).get('domains'))
    except ConfigurationError as e:
        return {
            'statusCode': 400,
            'body': {
                'message': 'SSL Expiration Monitor is not configured',
                'error': str(e),
                'timestamp': datetime.now(timezone.utc).isoformat()
            }
        }

    try:
        result = SSLExpirationMonitor(settings).execute()
    except Exception as e:
        LoggerService(log_level=settings.log_level).logger.error(f"Lambda函数执行时发生严重错误: {type(e).__name__}: {e}")
        return {
            'statusCode': 500,
            'body': {
                'message': 'SSL Expiration Monitor encountered a critical error',
                'error': str(e),
                'timestamp': datetime.now(timezone.utc).isoformat()
            }
        }

    response = {
        'statusCode': 200,
        'body': {
            'message': 'SSL Expiration Monitor executed successfully',
            'summary': {
                'total_domains': result.total_domains,
                'successful_checks': result.successful_checks,
                'failed_checks': result.failed_checks,
                'expired_certificates': len(result.expired_domains),
                'expiring_certificates': len(result.expiring_domains),
                'execution_time_seconds': result.execution_time,
            },
            'expired_domains': [outcome.domain for outcome in result.expired_domains],
            'expiring_domains': [outcome.domain for outcome in result.expiring_domains],
            'errors': result.errors[:5],
            'timestamp': datetime.now(timezone.utc).isoformat()
        }
    }

    if result.total_domains == 0:
        response['statusCode'] = 500
        response['body']['message'] = 'SSL Expiration Monitor found no valid domains'

    return response
