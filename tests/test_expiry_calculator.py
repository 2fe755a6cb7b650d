"""
证书过期计算器测试
"""
import pytest
from datetime import datetime, timezone, timedelta

from ssl_expiration_monitor.errors import ConnectError
from ssl_expiration_monitor.services.expiry_calculator import ExpiryCalculator
from ssl_expiration_monitor.models import ExpirationResult, ProbeRequest, ProbeOutcome


def _outcome(domain: str, seconds: int = None) -> ProbeOutcome:
    request = ProbeRequest(host=domain)
    if seconds is None:
        return ProbeOutcome(request=request, error=ConnectError(domain, "refused"))
    return ProbeOutcome(request=request, result=ExpirationResult(seconds))


class TestExpiryCalculator:
    """证书过期计算器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.calculator = ExpiryCalculator(warning_days=22)

    def test_seconds_until_expiry_exact(self):
        """测试给定当前时间时结果精确"""
        now = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
        not_after = datetime(2024, 1, 2, 0, 0, 30, tzinfo=timezone.utc)

        assert self.calculator.seconds_until_expiry(not_after, now) == 86430

    def test_seconds_until_expiry_negative(self):
        """测试已过期时为负数"""
        now = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
        not_after = datetime(2024, 3, 1, 11, 59, 0, tzinfo=timezone.utc)

        assert self.calculator.seconds_until_expiry(not_after, now) == -60

    def test_leap_year(self):
        """测试闰年2月按29天计算"""
        now = datetime(2024, 2, 1, tzinfo=timezone.utc)
        not_after = datetime(2024, 3, 1, tzinfo=timezone.utc)

        assert self.calculator.seconds_until_expiry(not_after, now) == 29 * 86400

    def test_non_leap_year(self):
        """测试平年2月按28天计算"""
        now = datetime(2023, 2, 1, tzinfo=timezone.utc)
        not_after = datetime(2023, 3, 1, tzinfo=timezone.utc)

        assert self.calculator.seconds_until_expiry(not_after, now) == 28 * 86400

    def test_month_lengths_over_a_year(self):
        """测试跨年的实际天数"""
        now = datetime(2023, 6, 15, tzinfo=timezone.utc)
        not_after = datetime(2024, 6, 15, tzinfo=timezone.utc)

        assert self.calculator.calculate(not_after, now).days == 366

    def test_timezone_offsets(self):
        """测试不同时区的时间按绝对时刻计算"""
        now = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
        not_after = datetime(2024, 1, 1, 8, 0, 0, tzinfo=timezone(timedelta(hours=8)))

        assert self.calculator.seconds_until_expiry(not_after, now) == 0

    def test_naive_datetime_treated_as_utc(self):
        """测试无时区时间按UTC处理"""
        now = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
        not_after = datetime(2024, 1, 1, 1, 0, 0)

        assert self.calculator.seconds_until_expiry(not_after, now) == 3600

    def test_default_now(self):
        """测试默认使用当前时间"""
        future = datetime.now(timezone.utc) + timedelta(days=15, hours=1)
        result = self.calculator.calculate(future)

        assert result.days == 15
        assert result.is_expired is False

    def test_days_non_increasing_as_time_advances(self):
        """测试时间推进时天数单调不增"""
        not_after = datetime(2024, 12, 31, 23, 59, 59, tzinfo=timezone.utc)
        start = datetime(2024, 12, 1, tzinfo=timezone.utc)

        previous = None
        for hours in range(0, 24 * 40, 7):
            days = self.calculator.calculate(not_after, start + timedelta(hours=hours)).days
            if previous is not None:
                assert days <= previous
            previous = days

    def test_is_expiring_soon(self):
        """测试即将过期判断"""
        assert self.calculator.is_expiring_soon(_outcome("soon.com", 86400 * 10)) is True
        assert self.calculator.is_expiring_soon(_outcome("edge.com", 86400 * 22)) is False
        assert self.calculator.is_expiring_soon(_outcome("edge.com", 86400 * 21 + 5)) is True
        assert self.calculator.is_expiring_soon(_outcome("far.com", 86400 * 60)) is False
        assert self.calculator.is_expiring_soon(_outcome("expired.com", -10)) is False
        assert self.calculator.is_expiring_soon(_outcome("failed.com")) is False

    def test_is_expired(self):
        """测试已过期判断"""
        assert self.calculator.is_expired(_outcome("expired.com", -1)) is True
        assert self.calculator.is_expired(_outcome("ok.com", 0)) is False
        assert self.calculator.is_expired(_outcome("failed.com")) is False

    def test_categorize_certificates(self):
        """测试分类"""
        outcomes = [
            _outcome("expired.com", -86400 * 5),
            _outcome("expiring.com", 86400 * 15),
            _outcome("healthy.com", 86400 * 60),
            _outcome("failed.com"),
        ]

        categorized = self.calculator.categorize_certificates(outcomes)

        assert categorized['total'] == 4
        assert categorized['successful'] == 3
        assert categorized['failed'] == 1
        assert [o.domain for o in categorized['expired']] == ["expired.com"]
        assert [o.domain for o in categorized['expiring_soon']] == ["expiring.com"]
        assert [o.domain for o in categorized['healthy']] == ["healthy.com"]

    def test_get_expiry_summary(self):
        """测试摘要"""
        outcomes = [
            _outcome("expired.com", -86400 * 5),
            _outcome("expiring.com", 86400 * 15),
            _outcome("failed.com"),
        ]

        summary = self.calculator.get_expiry_summary(outcomes)

        assert "总计: 3 个域名" in summary
        assert "失败: 1 个" in summary
        assert "已过期: 1 个" in summary
        assert "即将过期(22天内): 1 个" in summary
        assert "健康" not in summary
