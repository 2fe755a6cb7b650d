"""
测试公共夹具
"""
import logging
import os
import socket
import ssl
import threading
from datetime import datetime, timezone, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from ssl_expiration_monitor.models import ResolvedAddress
from ssl_expiration_monitor.services.address_resolver import AddressResolver


def pytest_collection_modifyitems(config, items):
    """未设置 SSL_EXPIRATION_NETWORK_TESTS=1 时跳过需要公网的测试"""
    if os.getenv("SSL_EXPIRATION_NETWORK_TESTS") == "1":
        return
    skip_network = pytest.mark.skip(reason="设置 SSL_EXPIRATION_NETWORK_TESTS=1 以运行公网测试")
    for item in items:
        if "network" in item.keywords:
            item.add_marker(skip_network)


@pytest.fixture(autouse=True)
def reset_monitor_logger():
    """每个测试结束后移除日志处理器，避免引用已关闭的输出流"""
    yield
    logging.getLogger("ssl_expiration_monitor").handlers.clear()


def make_certificate(not_before: datetime, not_after: datetime, common_name: str = "localhost"):
    """生成自签名证书和私钥"""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before.replace(microsecond=0))
        .not_valid_after(not_after.replace(microsecond=0))
        .sign(key, hashes.SHA256())
    )
    return cert, key


class LocalTLSServer:
    """在 127.0.0.1 上用指定证书完成TLS握手的测试服务器"""

    def __init__(self, cert_path: str, key_path: str):
        self.context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        self.context.load_cert_chain(cert_path, key_path)
        self.server_names = []
        self.context.sni_callback = self._record_server_name

        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(5)
        self.sock.settimeout(0.2)
        self.port = self.sock.getsockname()[1]

        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _record_server_name(self, ssl_socket, server_name, context):
        self.server_names.append(server_name)

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break

            conn.settimeout(2)
            try:
                with self.context.wrap_socket(conn, server_side=True):
                    pass
            except (ssl.SSLError, OSError):
                conn.close()

    def close(self):
        self._stop.set()
        self._thread.join(timeout=2)
        self.sock.close()


class PlainTCPServer:
    """返回非TLS数据后立即关闭连接的服务器"""

    def __init__(self, payload: bytes = b"HTTP/1.1 400 Bad Request\r\n\r\n"):
        self.payload = payload
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(5)
        self.sock.settimeout(0.2)
        self.port = self.sock.getsockname()[1]

        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            with conn:
                try:
                    conn.recv(4096)
                    conn.sendall(self.payload)
                except OSError:
                    pass

    def close(self):
        self._stop.set()
        self._thread.join(timeout=2)
        self.sock.close()


class LoopbackResolver(AddressResolver):
    """把任意主机名解析到 127.0.0.1，用于测试SNI"""

    def __init__(self):
        self.calls = []

    def resolve_all(self, host, port):
        self.calls.append((host, port))
        return [ResolvedAddress(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP, ("127.0.0.1", port))]


def _start_tls_server(tmp_path, not_before, not_after):
    cert, key = make_certificate(not_before, not_after)
    cert_path = tmp_path / "cert.pem"
    key_path = tmp_path / "key.pem"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ))
    server = LocalTLSServer(str(cert_path), str(key_path))
    server.certificate = cert
    return server


@pytest.fixture
def valid_tls_server(tmp_path):
    """证书还有90天（多1小时）过期的服务器"""
    now = datetime.now(timezone.utc)
    server = _start_tls_server(tmp_path, now - timedelta(days=1), now + timedelta(days=90, hours=1))
    yield server
    server.close()


@pytest.fixture
def expired_tls_server(tmp_path):
    """证书已过期2天（多1小时）的服务器"""
    now = datetime.now(timezone.utc)
    server = _start_tls_server(tmp_path, now - timedelta(days=30), now - timedelta(days=2, hours=1))
    yield server
    server.close()


@pytest.fixture
def plain_tcp_server():
    server = PlainTCPServer()
    yield server
    server.close()


@pytest.fixture
def closed_port():
    """一个当前没有监听者的本地端口"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def loopback_resolver():
    return LoopbackResolver()
