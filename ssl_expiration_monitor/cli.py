"""
命令行入口

    ssl-expiration check [DOMAIN ...]   检查证书剩余天数并发送告警
    ssl-expiration serve                运行 Prometheus 导出器
    ssl-expiration validate             打印配置验证摘要
"""
import argparse
import errno
import sys
from typing import List, Optional, TextIO

from .errors import ConfigurationError, MissingDomainConfigurationError
from .lambda_handler import SSLExpirationMonitor
from .settings import MonitorSettings, DOMAIN_ENV_VAR
from .services.config_validator import ConfigValidator
from .services.domain_config import DomainConfigManager
from .services.logger import LoggerService
from .services.metrics_exporter import ExpiryCollector, serve_metrics
from .services.result_cache import ResultCache


EXIT_OK = 0
EXIT_FATAL = 1


def build_parser() -> argparse.ArgumentParser:
    """
    构建命令行解析器

    Returns:
        argparse.ArgumentParser: 带 check、serve、validate 子命令的解析器
    """
    parser = argparse.ArgumentParser(
        prog="ssl-expiration",
        description="Report how many days remain before TLS certificates expire."
    )
    subparsers = parser.add_subparsers(dest="command")

    check = subparsers.add_parser("check", help="probe domains once and print days until expiry")
    check.add_argument(
        "domains", nargs="*",
        help=f"host or host:port to check (default: ${DOMAIN_ENV_VAR}, comma-separated)"
    )
    check.add_argument("--timeout", type=float, help="probe timeout in seconds")
    check.add_argument("--alert-days", type=int, help="alert when fewer days remain")

    serve = subparsers.add_parser("serve", help="serve days_until_expiry in Prometheus format")
    serve.add_argument("--host", help="bind address (default: $EXPORTER_HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, help="bind port (default: $EXPORTER_PORT or 8080)")

    subparsers.add_parser("validate", help="validate environment configuration")
    return parser


def run_check(settings: MonitorSettings, stdout: Optional[TextIO] = None, stderr: Optional[TextIO] = None) -> int:
    """
    检查所有配置的域名

    单个域名失败不会中断其他域名的检查。

    Returns:
        int: 退出码
    """
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    monitor = SSLExpirationMonitor(settings)
    targets = monitor.domain_manager.get_targets()
    if not targets:
        print(f"No valid domain found in {settings.domains!r}", file=stderr)
        return EXIT_FATAL

    outcomes = monitor.check_all(targets)
    for outcome in outcomes:
        if outcome.ok:
            print(f"{outcome.domain} SSL certificate will expire in {outcome.days} days", file=stdout)
        else:
            print(f"An error occurred when checking {outcome.domain}: {outcome.error}", file=stderr)

    categorized = monitor.expiry_calculator.categorize_certificates(outcomes)
    monitor.send_alerts(categorized['expired'] + categorized['expiring_soon'])
    return EXIT_OK


def run_exporter(settings: MonitorSettings, stderr: Optional[TextIO] = None) -> int:
    """运行 Prometheus 导出器，正常退出返回 0"""
    stderr = stderr or sys.stderr
    LoggerService(log_level=settings.log_level)
    targets = DomainConfigManager(timeout=settings.timeout, domains=settings.domains).get_targets()
    if not targets:
        print(f"No valid domain found in {settings.domains!r}", file=stderr)
        return EXIT_FATAL

    cache = ResultCache(ttl_seconds=settings.cache_ttl) if settings.cache_ttl > 0 else None
    collector = ExpiryCollector(targets, cache=cache, workers=settings.workers)
    serve_metrics(collector, settings.exporter_host, settings.exporter_port, settings.log_level)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """
    命令行主函数，未指定子命令时执行 check

    Args:
        argv: 命令行参数，为空时读取 sys.argv

    Returns:
        int: 退出码（缺少域名配置时为 EINVAL）
    """
    args = build_parser().parse_args(argv)
    command = args.command or "check"

    if command == "validate":
        validator = ConfigValidator()
        validation_result = validator.validate_all_configurations()
        print(validator.get_configuration_summary(validation_result))
        return EXIT_OK if validation_result['is_valid'] else EXIT_FATAL

    domains = ",".join(args.domains) if getattr(args, "domains", None) else None
    try:
        settings = MonitorSettings.from_env(domains=domains)
        if getattr(args, "timeout", None) is not None:
            settings.timeout = args.timeout
        if getattr(args, "alert_days", None) is not None:
            settings.alert_days = args.alert_days
        if getattr(args, "host", None):
            settings.exporter_host = args.host
        if getattr(args, "port", None) is not None:
            settings.exporter_port = args.port
        settings.validate()
    except MissingDomainConfigurationError as e:
        print(f"{e} (set {DOMAIN_ENV_VAR} or pass domains)", file=sys.stderr)
        return errno.EINVAL
    except ConfigurationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_FATAL

    if command == "serve":
        return run_exporter(settings)
    return run_check(settings)


if __name__ == "__main__":
    sys.exit(main())
