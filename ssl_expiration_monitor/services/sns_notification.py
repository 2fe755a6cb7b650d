"""
告警通知服务
"""
import os
import time
from typing import List, Optional
import logging
from datetime import datetime, timezone

import boto3
from botocore.exceptions import ClientError, BotoCoreError

from ..interfaces import NotificationServiceInterface
from ..models import ProbeOutcome


def format_alert_lines(outcomes: List[ProbeOutcome]) -> List[str]:
    """把告警域名格式化为逐行文本"""
    lines = []
    for outcome in outcomes:
        if outcome.is_expired:
            lines.append(f"• {outcome.domain}: 已过期 {abs(outcome.days)} 天")
        else:
            lines.append(f"• {outcome.domain}: 剩余 {outcome.days} 天")
    return lines


class LoggingNotificationService(NotificationServiceInterface):
    """只写日志的告警通知（未配置SNS时的默认实现）"""

    def __init__(self, logger_name: str = "ssl_expiration_monitor"):
        self.logger = logging.getLogger(logger_name)

    def send_expiry_notification(self, outcomes: List[ProbeOutcome]) -> bool:
        if not outcomes:
            return True
        self.logger.warning(self.format_notification_content(outcomes))
        return True

    def format_notification_content(self, outcomes: List[ProbeOutcome]) -> str:
        return "\n".join([f"SSL证书过期告警（{len(outcomes)} 个域名）:"] + format_alert_lines(outcomes))


class SNSNotificationService(NotificationServiceInterface):
    """SNS通知服务实现"""

    def __init__(self, topic_arn: Optional[str] = None, region_name: Optional[str] = None,
                 warning_days: int = 22):
        """
        初始化SNS通知服务

        Args:
            topic_arn: SNS主题ARN，如果为None则从环境变量读取
            region_name: AWS区域名称，如果为None则自动检测
            warning_days: 告警阈值天数，用于通知文案
        """
        self.topic_arn = topic_arn or os.getenv('SNS_TOPIC_ARN')
        self.warning_days = warning_days

        # 自动检测区域
        if region_name:
            self.region_name = region_name
        elif self.topic_arn and self.topic_arn.startswith('arn:aws:sns:'):
            # 从SNS ARN中提取区域
            self.region_name = self.topic_arn.split(':')[3]
        else:
            self.region_name = os.getenv('AWS_REGION', 'us-east-1')

        self.logger = logging.getLogger(__name__)

        self.sns_client = None
        try:
            self.sns_client = boto3.client('sns', region_name=self.region_name)
            self.logger.info(f"SNS客户端初始化成功，区域: {self.region_name}")
        except BotoCoreError as e:
            self.logger.error(f"初始化SNS客户端失败: {e}")

    def send_expiry_notification(self, outcomes: List[ProbeOutcome]) -> bool:
        """
        发送证书过期告警

        Args:
            outcomes: 需要告警的探测结果

        Returns:
            bool: 发送是否成功
        """
        if not outcomes:
            self.logger.info("没有需要告警的证书，跳过通知发送")
            return True

        if not self._validate_configuration():
            return False

        subject = self._format_subject(outcomes)
        message = self.format_notification_content(outcomes)

        return self._publish_with_retry(subject, message)

    def _publish_with_retry(self, subject: str, message: str, max_retries: int = 3) -> bool:
        """
        带重试机制的SNS消息发布

        Args:
            subject: 消息主题
            message: 消息内容
            max_retries: 最大重试次数

        Returns:
            bool: 发送是否成功
        """
        for attempt in range(max_retries + 1):
            try:
                response = self.sns_client.publish(
                    TopicArn=self.topic_arn,
                    Subject=subject,
                    Message=message
                )

                self.logger.info(f"SNS通知发送成功，MessageId: {response.get('MessageId')}")
                return True

            except ClientError as e:
                error_code = e.response['Error']['Code']
                error_message = e.response['Error']['Message']

                if self._is_retryable_error(error_code) and attempt < max_retries:
                    wait_time = 2 ** attempt  # 指数退避
                    self.logger.warning(
                        f"SNS发送失败 (尝试 {attempt + 1}/{max_retries + 1}) - {error_code}: {error_message}，"
                        f"{wait_time}秒后重试"
                    )
                    time.sleep(wait_time)
                    continue

                self.logger.error(f"SNS发送失败 - {error_code}: {error_message}")
                return False

            except BotoCoreError as e:
                if attempt < max_retries:
                    wait_time = 2 ** attempt
                    self.logger.warning(
                        f"发送SNS通知时发生错误 (尝试 {attempt + 1}/{max_retries + 1}): {e}，{wait_time}秒后重试"
                    )
                    time.sleep(wait_time)
                    continue

                self.logger.error(f"发送SNS通知时发生错误: {e}")
                return False

        return False

    def _is_retryable_error(self, error_code: str) -> bool:
        """判断AWS错误代码是否可重试"""
        retryable_errors = {
            'Throttling',
            'ServiceUnavailable',
            'InternalError',
            'RequestTimeout'
        }
        return error_code in retryable_errors

    def format_notification_content(self, outcomes: List[ProbeOutcome]) -> str:
        """
        格式化通知内容

        Args:
            outcomes: 需要告警的探测结果

        Returns:
            str: 格式化的通知内容
        """
        if not outcomes:
            return "所有SSL证书状态正常。"

        expired = [outcome for outcome in outcomes if outcome.is_expired]
        expiring = [outcome for outcome in outcomes if not outcome.is_expired]

        lines = [
            "SSL证书过期监控告警",
            "=" * 30,
            f"检查时间: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')} UTC",
            ""
        ]

        if expired:
            lines.append("🚨 已过期证书:")
            lines.extend(format_alert_lines(expired))
            lines.append("")

        if expiring:
            lines.append(f"⚠️  即将过期证书 ({self.warning_days}天内):")
            lines.extend(format_alert_lines(expiring))
            lines.append("")

        lines.append("此消息由SSL证书过期监控自动发送。")
        return "\n".join(lines)

    def _format_subject(self, outcomes: List[ProbeOutcome]) -> str:
        """格式化通知主题"""
        expired_count = len([outcome for outcome in outcomes if outcome.is_expired])
        expiring_count = len(outcomes) - expired_count

        if expired_count > 0 and expiring_count > 0:
            return f"🚨 SSL证书警报: {expired_count}个已过期, {expiring_count}个即将过期"
        elif expired_count > 0:
            return f"🚨 SSL证书警报: {expired_count}个证书已过期"
        return f"⚠️ SSL证书提醒: {expiring_count}个证书即将过期"

    def _validate_configuration(self) -> bool:
        """验证配置是否正确"""
        if not self.sns_client:
            self.logger.error("SNS客户端未初始化")
            return False

        if not self.topic_arn:
            self.logger.error("SNS主题ARN未配置")
            return False

        return True


def create_notification_service(topic_arn: Optional[str] = None,
                                warning_days: int = 22) -> NotificationServiceInterface:
    """配置了SNS主题时使用SNS，否则只写日志"""
    topic_arn = topic_arn or os.getenv('SNS_TOPIC_ARN')
    if topic_arn:
        return SNSNotificationService(topic_arn=topic_arn, warning_days=warning_days)
    return LoggingNotificationService()
