"""
证书过期计算服务
"""
from datetime import datetime, timezone, timedelta
from typing import List, Optional
from ..models import ExpirationResult, ProbeOutcome


ONE_SECOND = timedelta(seconds=1)


class ExpiryCalculator:
    """证书过期计算器"""

    def __init__(self, warning_days: int = 22):
        """
        初始化过期计算器

        Args:
            warning_days: 剩余天数低于该值时告警，默认22天
        """
        self.warning_days = warning_days

    def seconds_until_expiry(self, not_after: datetime, now: Optional[datetime] = None) -> int:
        """
        计算距离过期的秒数

        使用带时区的 datetime 做日历运算，闰年和月份长度由标准库处理。

        Args:
            not_after: 证书过期时间
            now: 当前时间，默认取当前UTC时间（截断到秒）

        Returns:
            int: 剩余秒数（负数表示已过期）
        """
        if now is None:
            now = datetime.now(timezone.utc).replace(microsecond=0)

        delta = _as_utc(not_after) - _as_utc(now)
        return delta // ONE_SECOND

    def calculate(self, not_after: datetime, now: Optional[datetime] = None) -> ExpirationResult:
        """计算剩余有效期"""
        return ExpirationResult(self.seconds_until_expiry(not_after, now))

    def is_expiring_soon(self, outcome: ProbeOutcome) -> bool:
        """
        判断证书是否即将过期（在警告期内）

        Args:
            outcome: 探测结果

        Returns:
            bool: 是否即将过期
        """
        return outcome.ok and 0 <= outcome.days < self.warning_days and not outcome.is_expired

    def is_expired(self, outcome: ProbeOutcome) -> bool:
        """判断证书是否已过期"""
        return outcome.is_expired

    def filter_expiring_certificates(self, outcomes: List[ProbeOutcome]) -> List[ProbeOutcome]:
        """筛选即将过期的证书"""
        return [outcome for outcome in outcomes if self.is_expiring_soon(outcome)]

    def filter_expired_certificates(self, outcomes: List[ProbeOutcome]) -> List[ProbeOutcome]:
        """筛选已过期的证书"""
        return [outcome for outcome in outcomes if self.is_expired(outcome)]

    def categorize_certificates(self, outcomes: List[ProbeOutcome]) -> dict:
        """
        对探测结果进行分类

        Args:
            outcomes: 探测结果列表

        Returns:
            dict: 分类结果
        """
        successful = [outcome for outcome in outcomes if outcome.ok]

        return {
            'total': len(outcomes),
            'successful': len(successful),
            'failed': len(outcomes) - len(successful),
            'expired': self.filter_expired_certificates(successful),
            'expiring_soon': self.filter_expiring_certificates(successful),
            'healthy': [outcome for outcome in successful
                        if not self.is_expired(outcome) and not self.is_expiring_soon(outcome)]
        }

    def get_expiry_summary(self, outcomes: List[ProbeOutcome]) -> str:
        """
        获取过期状态摘要

        Args:
            outcomes: 探测结果列表

        Returns:
            str: 摘要信息
        """
        categorized = self.categorize_certificates(outcomes)

        summary_parts = [
            f"总计: {categorized['total']} 个域名",
            f"成功: {categorized['successful']} 个",
            f"失败: {categorized['failed']} 个"
        ]

        if categorized['expired']:
            summary_parts.append(f"已过期: {len(categorized['expired'])} 个")

        if categorized['expiring_soon']:
            summary_parts.append(f"即将过期({self.warning_days}天内): {len(categorized['expiring_soon'])} 个")

        if categorized['healthy']:
            summary_parts.append(f"健康: {len(categorized['healthy'])} 个")

        return ", ".join(summary_parts)


def _as_utc(value: datetime) -> datetime:
    # 无时区信息的时间按UTC处理
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
