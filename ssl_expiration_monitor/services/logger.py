"""
日志服务
"""
import os
import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from ..interfaces import LoggerServiceInterface
from ..models import ProbeOutcome


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""

    def __init__(self, logger_name: str = "ssl_expiration_monitor", log_level: Optional[str] = None,
                 warning_days: int = 22):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
            warning_days: 低于该天数时以警告级别记录
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')
        self.warning_days = warning_days

        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        self.execution_stats = self._empty_stats()

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(level)
            handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
            self.logger.addHandler(handler)

        self.logger.propagate = False

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            'start_time': None,
            'end_time': None,
            'total_domains': 0,
            'successful_checks': 0,
            'failed_checks': 0,
            'errors': []
        }

    def log_check_start(self, domain_count: int):
        """
        记录检查开始

        Args:
            domain_count: 要检查的域名数量
        """
        self.execution_stats['start_time'] = datetime.now(timezone.utc)
        self.execution_stats['total_domains'] = domain_count

        self.logger.info(f"开始SSL证书过期检查，共 {domain_count} 个域名")

    def log_probe_outcome(self, outcome: ProbeOutcome):
        """
        记录探测结果

        Args:
            outcome: 探测结果
        """
        domain = outcome.domain
        if outcome.ok:
            self.execution_stats['successful_checks'] += 1
            result = outcome.result

            if result.is_expired:
                self.logger.warning(
                    f"证书已过期 - 域名: {domain}, 已过期: {abs(result.days)} 天 ({result.secs} 秒)"
                )
            elif result.days < self.warning_days:
                self.logger.warning(f"证书即将过期 - 域名: {domain}, 剩余天数: {result.days} 天")
            else:
                self.logger.info(f"证书正常 - 域名: {domain}, 剩余天数: {result.days} 天")
        else:
            self.execution_stats['failed_checks'] += 1
            self._record_error(domain, outcome.error)
            self.logger.error(f"证书检查失败 - 域名: {domain}, 错误: {outcome.error_message}")

    def log_error(self, domain: str, error: Exception):
        """
        记录错误信息

        Args:
            domain: 域名
            error: 异常对象
        """
        self._record_error(domain, error)

        self.logger.error(f"域名 {domain} 检查时发生错误: {type(error).__name__}: {error}")
        self.logger.debug(f"域名 {domain} 错误堆栈跟踪:\n{traceback.format_exc()}")

    def _record_error(self, domain: str, error: Optional[Exception]):
        self.execution_stats['errors'].append({
            'domain': domain,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat()
        })

    def log_check_end(self):
        """记录检查结束"""
        self.execution_stats['end_time'] = datetime.now(timezone.utc)

        self.logger.info(
            f"检查完成: 总计 {self.execution_stats['total_domains']} 个域名, "
            f"成功 {self.execution_stats['successful_checks']} 个, "
            f"失败 {self.execution_stats['failed_checks']} 个"
        )

    def log_notification_sent(self, notification_type: str, recipient_count: int, success: bool):
        """
        记录通知发送状态

        Args:
            notification_type: 通知类型（如 "SNS"）
            recipient_count: 告警涉及的域名数量
            success: 是否发送成功
        """
        if success:
            self.logger.info(f"{notification_type} 通知发送成功，域名数量: {recipient_count}")
        else:
            self.logger.error(f"{notification_type} 通知发送失败，域名数量: {recipient_count}")

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息

        Args:
            config: 配置信息字典
        """
        safe_config = self._sanitize_config(config)

        self.logger.info("系统配置信息:")
        for key, value in safe_config.items():
            self.logger.info(f"  {key}: {value}")

    def _sanitize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        清理配置信息中的敏感数据

        Args:
            config: 原始配置

        Returns:
            Dict[str, Any]: 清理后的配置
        """
        sensitive_keys = {'password', 'secret', 'token', 'credential', 'key', 'sns_topic_arn'}
        sensitive_suffixes = ('_key', '_secret', '_password', '_token')

        safe_config = {}
        for key, value in config.items():
            key_lower = key.lower()
            is_sensitive = key_lower in sensitive_keys or key_lower.endswith(sensitive_suffixes)

            if is_sensitive and isinstance(value, str) and value:
                safe_config[key] = mask_value(value)
            else:
                safe_config[key] = value

        return safe_config

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        stats = self.execution_stats
        duration = 0
        if stats['start_time'] and stats['end_time']:
            duration = (stats['end_time'] - stats['start_time']).total_seconds()

        return {
            'start_time': stats['start_time'].isoformat() if stats['start_time'] else None,
            'end_time': stats['end_time'].isoformat() if stats['end_time'] else None,
            'duration_seconds': duration,
            'total_domains': stats['total_domains'],
            'successful_checks': stats['successful_checks'],
            'failed_checks': stats['failed_checks'],
            'success_rate': (
                stats['successful_checks'] / stats['total_domains']
                if stats['total_domains'] > 0 else 0
            ),
            'error_count': len(stats['errors']),
            'errors': stats['errors']
        }

    def log_execution_summary(self):
        """记录执行摘要"""
        summary = self.get_execution_summary()

        self.logger.info("=" * 50)
        self.logger.info("执行摘要")
        self.logger.info(f"执行时长: {summary['duration_seconds']:.2f} 秒")
        self.logger.info(f"成功率: {summary['success_rate']:.1%}")

        for i, error in enumerate(summary['errors'][:5], 1):
            self.logger.info(f"  错误 {i}: {error['domain']} - {error['error_type']}: {error['error_message']}")

        if len(summary['errors']) > 5:
            self.logger.info(f"  ... 还有 {len(summary['errors']) - 5} 个错误")

        self.logger.info("=" * 50)


def mask_value(value: str) -> str:
    """隐藏敏感值，ARN 只保留服务前缀和最后两段"""
    if value.startswith('arn:'):
        parts = value.split(':')
        if len(parts) >= 6:
            return f"{':'.join(parts[:3])}:***:{parts[-2]}:{parts[-1]}"
        return "***"
    return value[:3] + "***" if len(value) > 3 else "***"
