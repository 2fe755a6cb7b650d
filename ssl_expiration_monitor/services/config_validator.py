"""
配置验证服务
"""
import os
import re
from typing import Dict, Any, Optional

from ..errors import ConfigurationError
from ..models import is_valid_timeout
from ..settings import DOMAIN_ENV_VAR, NUMERIC_ENV_VARS, MonitorSettings, _env_number
from .domain_config import DomainConfigManager
from .logger import mask_value


class ConfigValidator:
    """配置验证器"""

    def __init__(self):
        """初始化配置验证器"""
        # 必需的环境变量
        self.required_env_vars = {
            DOMAIN_ENV_VAR: '域名列表（逗号分隔，可带端口）'
        }

        # 可选的环境变量
        self.optional_env_vars = {
            'SSL_EXPIRATION_TIMEOUT': '探测超时时间（秒）',
            'SSL_EXPIRATION_ALERT_DAYS': '告警阈值天数',
            'SSL_EXPIRATION_MAX_RETRIES': '瞬时错误重试次数',
            'SSL_EXPIRATION_CACHE_TTL': '导出器缓存时间（秒）',
            'SSL_EXPIRATION_WORKERS': '并发探测数',
            'EXPORTER_HOST': '导出器监听地址',
            'EXPORTER_PORT': '导出器监听端口',
            'SNS_TOPIC_ARN': 'SNS主题ARN',
            'LOG_LEVEL': '日志级别'
        }

        # 数值型环境变量，取值范围与运行配置共用
        self.numeric_env_vars = NUMERIC_ENV_VARS

    def validate_all_configurations(self) -> Dict[str, Any]:
        """
        验证所有配置

        Returns:
            Dict[str, Any]: 验证结果
        """
        validation_result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'configurations': {}
        }

        for name, validate in (
            ('environment', self.validate_environment_variables),
            ('domains', self.validate_domains_configuration),
            ('numbers', self.validate_numeric_configuration),
        ):
            section = validate()
            validation_result['configurations'][name] = section
            if not section['is_valid']:
                validation_result['is_valid'] = False
                validation_result['errors'].extend(section['errors'])
            validation_result['warnings'].extend(section['warnings'])

        # SNS是可选的，错误只作为警告
        sns_validation = self.validate_sns_configuration()
        validation_result['configurations']['sns'] = sns_validation
        validation_result['warnings'].extend(sns_validation['errors'])

        return validation_result

    def validate_environment_variables(self) -> Dict[str, Any]:
        """
        验证环境变量

        Returns:
            Dict[str, Any]: 环境变量验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'missing_required': [],
            'present_vars': {}
        }

        for var_name, description in self.required_env_vars.items():
            value = os.getenv(var_name)
            if not value:
                result['missing_required'].append({'name': var_name, 'description': description})
                result['errors'].append(f"缺少必需的环境变量: {var_name} ({description})")
                result['is_valid'] = False
            else:
                result['present_vars'][var_name] = value

        for var_name in self.optional_env_vars:
            value = os.getenv(var_name)
            if value:
                result['present_vars'][var_name] = self._sanitize_env_value(var_name, value)

        return result

    def validate_domains_configuration(self) -> Dict[str, Any]:
        """
        验证域名配置

        Returns:
            Dict[str, Any]: 域名配置验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'total_domains': 0,
            'valid_domains': [],
            'invalid_domains': []
        }

        domains_str = os.getenv(DOMAIN_ENV_VAR, '')

        if not domains_str.strip():
            result['is_valid'] = False
            result['errors'].append(f"{DOMAIN_ENV_VAR}环境变量为空")
            return result

        manager = DomainConfigManager()
        raw_domains = [domain.strip() for domain in domains_str.split(',') if domain.strip()]
        result['total_domains'] = len(raw_domains)

        for domain in raw_domains:
            parsed = manager.parse_target(domain)
            if parsed:
                result['valid_domains'].append(domain)
            else:
                result['invalid_domains'].append(domain)
                result['warnings'].append(f"域名格式无效: {domain}")

        if not result['valid_domains']:
            result['is_valid'] = False
            result['errors'].append("没有找到有效的域名")

        return result

    def validate_numeric_configuration(self) -> Dict[str, Any]:
        """
        验证数值型配置

        Returns:
            Dict[str, Any]: 数值配置验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'values': {}
        }

        numbers = {}
        for var_name, (field, cast, default) in self.numeric_env_vars.items():
            raw = os.getenv(var_name, '').strip()
            if not raw:
                continue

            try:
                numbers[field] = _env_number(var_name, default, cast)
            except ConfigurationError:
                result['is_valid'] = False
                result['errors'].append(f"{var_name} 格式无效: {raw}")
                continue

            result['values'][var_name] = numbers[field]

        # 取值范围与 MonitorSettings.validate 一致
        range_errors = MonitorSettings(domains=os.getenv(DOMAIN_ENV_VAR, ''), **numbers).validation_errors()
        if range_errors:
            result['is_valid'] = False
            result['errors'].extend(range_errors)

        timeout = numbers.get('timeout')
        if timeout is not None and is_valid_timeout(timeout) and timeout > 120:
            result['warnings'].append(f"探测超时时间过长: {timeout}秒")

        return result

    def validate_sns_configuration(self) -> Dict[str, Any]:
        """
        验证SNS配置

        Returns:
            Dict[str, Any]: SNS配置验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'topic_arn': None,
            'arn_format_valid': False
        }

        topic_arn = os.getenv('SNS_TOPIC_ARN')

        if not topic_arn:
            result['is_valid'] = False
            result['errors'].append("SNS_TOPIC_ARN环境变量未设置，告警只写入日志")
            return result

        result['topic_arn'] = topic_arn

        arn_pattern = r'^arn:aws:sns:[a-z0-9-]+:\d{12}:[a-zA-Z0-9_-]+$'
        if re.match(arn_pattern, topic_arn):
            result['arn_format_valid'] = True
        else:
            result['is_valid'] = False
            result['errors'].append(f"SNS主题ARN格式无效: {topic_arn}")

        return result

    def _sanitize_env_value(self, var_name: str, value: str) -> str:
        """
        清理环境变量值（隐藏敏感信息）

        Args:
            var_name: 变量名
            value: 变量值

        Returns:
            str: 清理后的值
        """
        sensitive_vars = {'SNS_TOPIC_ARN', 'AWS_ACCESS_KEY_ID', 'AWS_SECRET_ACCESS_KEY'}

        if var_name in sensitive_vars and value:
            return mask_value(value)

        return value

    def get_configuration_summary(self, validation_result: Optional[Dict[str, Any]] = None) -> str:
        """
        获取配置摘要

        Args:
            validation_result: 已有的验证结果，为空时重新验证

        Returns:
            str: 配置摘要文本
        """
        if validation_result is None:
            validation_result = self.validate_all_configurations()

        lines = [
            "配置验证摘要",
            "=" * 30
        ]

        if validation_result['is_valid']:
            lines.append("✅ 配置验证通过")
        else:
            lines.append("❌ 配置验证失败")

        if validation_result['errors']:
            lines.append("\n错误:")
            for error in validation_result['errors']:
                lines.append(f"  • {error}")

        if validation_result['warnings']:
            lines.append("\n警告:")
            for warning in validation_result['warnings']:
                lines.append(f"  • {warning}")

        env_config = validation_result['configurations'].get('environment', {})
        if env_config.get('present_vars'):
            lines.append("\n配置详情:")
            for var_name, var_value in env_config['present_vars'].items():
                lines.append(f"  {var_name}: {var_value}")

        return "\n".join(lines)
