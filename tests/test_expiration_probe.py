"""
证书过期探测器测试
"""
import socket
import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import patch, MagicMock

from ssl_expiration_monitor.errors import (
    ProbeError,
    InvalidProbeRequestError,
    ResolutionError,
    ConnectError,
    ConnectTimeoutError,
    InvalidTimeoutError,
    HandshakeError,
    CertificateMissingError,
)
from ssl_expiration_monitor.models import ProbeRequest, ExpirationResult, PeerCertificate
from ssl_expiration_monitor.services.expiration_probe import SSLExpirationProbe, probe


class TestSSLExpirationProbe:
    """证书过期探测器测试类"""

    def test_probe_valid_certificate(self, valid_tls_server):
        """测试探测有效证书"""
        result = probe("127.0.0.1", valid_tls_server.port, timeout=5)

        assert isinstance(result, ExpirationResult)
        assert result.is_expired is False
        assert result.days == 90

    def test_probe_expired_certificate(self, expired_tls_server):
        """测试探测过期证书"""
        result = probe("127.0.0.1", expired_tls_server.port, timeout=5)

        assert result.is_expired is True
        assert result.secs < 0
        assert result.days == -2

    def test_probe_with_fixed_clock(self, valid_tls_server):
        """测试注入时钟时结果精确"""
        not_after = valid_tls_server.certificate.not_valid_after_utc
        now = not_after - timedelta(days=3, seconds=17)
        expiration_probe = SSLExpirationProbe(clock=lambda: now)

        result = expiration_probe.probe(ProbeRequest(host="127.0.0.1", port=valid_tls_server.port, timeout=5))

        assert result.secs == 3 * 86400 + 17

    def test_probe_uses_hostname_for_sni(self, valid_tls_server, loopback_resolver):
        """测试解析和SNI都使用请求中的主机名"""
        expiration_probe = SSLExpirationProbe(resolver=loopback_resolver)

        expiration_probe.probe(ProbeRequest(host="cert.example", port=valid_tls_server.port, timeout=5))

        assert loopback_resolver.calls == [("cert.example", valid_tls_server.port)]
        assert valid_tls_server.server_names == ["cert.example"]

    @pytest.mark.parametrize("timeout", [0, 0.0, -5])
    def test_zero_timeout_always_fails(self, valid_tls_server, timeout):
        """测试零超时总是失败，且不会发起解析"""
        resolver = MagicMock()
        expiration_probe = SSLExpirationProbe(resolver=resolver)

        with pytest.raises(ConnectTimeoutError):
            expiration_probe.probe(ProbeRequest(host="127.0.0.1", port=valid_tls_server.port, timeout=timeout))

        resolver.resolve.assert_not_called()

    @pytest.mark.parametrize("timeout", [float("nan"), float("inf"), 1e20])
    def test_non_finite_or_huge_timeout_fails(self, valid_tls_server, timeout):
        """测试 NaN、无穷大和超大超时直接失败，不会抛出未分类的异常"""
        with pytest.raises(InvalidTimeoutError) as exc_info:
            probe("127.0.0.1", valid_tls_server.port, timeout=timeout)

        assert isinstance(exc_info.value, ConnectTimeoutError)
        assert exc_info.value.domain == "127.0.0.1"
        assert valid_tls_server.server_names == []

    @pytest.mark.parametrize("host", ["", "   "])
    def test_empty_host_rejected(self, host):
        """测试空主机名"""
        with pytest.raises(InvalidProbeRequestError):
            SSLExpirationProbe().probe(ProbeRequest(host=host))

    @pytest.mark.parametrize("port", [0, -1, 65536])
    def test_port_out_of_range_rejected(self, port):
        """测试端口越界"""
        with pytest.raises(InvalidProbeRequestError):
            SSLExpirationProbe().probe(ProbeRequest(host="example.com", port=port))

    def test_invalid_request_is_value_error(self):
        """测试参数错误同时是 ValueError"""
        with pytest.raises(ValueError):
            probe("", 443, 5)

    @patch('ssl_expiration_monitor.services.address_resolver.socket.getaddrinfo')
    def test_unresolvable_host(self, mock_getaddrinfo):
        """测试无法解析的域名"""
        mock_getaddrinfo.side_effect = socket.gaierror(socket.EAI_NONAME, "Name or service not known")

        with pytest.raises(ResolutionError) as exc_info:
            probe("unresolvable.invalid", timeout=3)

        assert exc_info.value.domain == "unresolvable.invalid"

    def test_connection_refused(self, closed_port):
        """测试端口未监听"""
        with pytest.raises(ConnectError):
            probe("127.0.0.1", closed_port, timeout=3)

    def test_handshake_failure(self, plain_tcp_server):
        """测试对端不是TLS服务"""
        with pytest.raises(HandshakeError):
            probe("127.0.0.1", plain_tcp_server.port, timeout=3)

    def test_connection_closed_after_handshake(self):
        """测试握手失败时连接也会关闭"""
        mock_sock = MagicMock()
        mock_sock.__enter__.return_value = mock_sock
        connector = MagicMock()
        connector.connect.return_value = mock_sock
        handshake = MagicMock()
        handshake.fetch_certificate.side_effect = CertificateMissingError("nocert.example")

        expiration_probe = SSLExpirationProbe(resolver=MagicMock(), connector=connector, handshake=handshake)

        with pytest.raises(CertificateMissingError):
            expiration_probe.probe(ProbeRequest(host="nocert.example", timeout=2))

        mock_sock.__exit__.assert_called_once()

    def test_pipeline_passes_timeout_and_host(self):
        """测试各阶段收到的参数"""
        address = MagicMock()
        resolver = MagicMock()
        resolver.resolve.return_value = address
        mock_sock = MagicMock()
        mock_sock.__enter__.return_value = mock_sock
        connector = MagicMock()
        connector.connect.return_value = mock_sock
        not_after = datetime(2030, 1, 1, tzinfo=timezone.utc)
        handshake = MagicMock()
        handshake.fetch_certificate.return_value = PeerCertificate(not_after=not_after)
        now = datetime(2029, 12, 31, tzinfo=timezone.utc)

        expiration_probe = SSLExpirationProbe(resolver=resolver, connector=connector,
                                              handshake=handshake, clock=lambda: now)
        result = expiration_probe.probe(ProbeRequest(host="example.com", port=8443, timeout=7))

        resolver.resolve.assert_called_once_with("example.com", 8443)
        connector.connect.assert_called_once_with(address, 7, domain="example.com")
        handshake.fetch_certificate.assert_called_once_with(mock_sock, "example.com")
        assert result.secs == 86400

    def test_probe_outcome_wraps_errors(self, closed_port):
        """测试 probe_outcome 把错误包装为结果"""
        outcome = SSLExpirationProbe().probe_outcome(ProbeRequest(host="127.0.0.1", port=closed_port, timeout=2))

        assert outcome.ok is False
        assert isinstance(outcome.error, ProbeError)
        assert outcome.days == -1

    def test_probe_outcome_success(self, valid_tls_server):
        """测试 probe_outcome 成功"""
        outcome = SSLExpirationProbe().probe_outcome(
            ProbeRequest(host="127.0.0.1", port=valid_tls_server.port, timeout=5)
        )

        assert outcome.ok is True
        assert outcome.domain == f"127.0.0.1:{valid_tls_server.port}"
        assert outcome.days == 90
