"""
TLS握手与证书提取服务
"""
import socket
import ssl

from cryptography import x509

from ..errors import HandshakeError, CertificateMissingError, CertificateParseError
from ..models import PeerCertificate


def create_inspection_context() -> ssl.SSLContext:
    """
    创建不校验证书的TLS客户端上下文

    这里只读取服务器提供的证书，不信任它：自签名、过期或链不完整的证书
    也必须能被读出来，所以关闭了主机名检查和证书链校验。不要改成严格校验。
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class HandshakeProbe:
    """在已建立的连接上完成TLS握手并读取叶子证书"""

    def fetch_certificate(self, sock: socket.socket, host: str) -> PeerCertificate:
        """
        执行握手并提取证书

        Args:
            sock: 已连接且设置了超时的套接字
            host: 目标主机名，用于SNI

        Returns:
            PeerCertificate: 叶子证书

        Raises:
            HandshakeError: 握手失败（协议错误、连接重置、超时等）
            CertificateMissingError: 没有证书
            CertificateParseError: 证书无法解析
        """
        context = create_inspection_context()

        try:
            with context.wrap_socket(sock, server_hostname=host) as ssock:
                cert_der = ssock.getpeercert(binary_form=True)
        except (ssl.SSLError, OSError, ValueError) as e:
            raise HandshakeError(host, e) from e

        if not cert_der:
            raise CertificateMissingError(host)

        return parse_certificate(cert_der, host)


def parse_certificate(cert_der: bytes, domain: str) -> PeerCertificate:
    """
    从DER格式解析证书过期时间

    Args:
        cert_der: DER编码的证书
        domain: 用于错误信息的域名

    Returns:
        PeerCertificate: 解析后的证书
    """
    try:
        cert = x509.load_der_x509_certificate(cert_der)
        not_after = cert.not_valid_after_utc
    except ValueError as e:
        raise CertificateParseError(domain, "unable to parse peer certificate", e) from e

    return PeerCertificate(not_after=not_after, der=cert_der)
