"""TLS certificate expiry checker."""

import asyncio
import socket
import ssl
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from cryptography import x509
from cryptography.x509.oid import NameOID

from ..config.models import SSLCheckConfig
from ..utils.errors import ConfigError
from ..utils.metrics import MetricRecord
from .base import BaseCollector, safe_collect

EVENT_TYPE_VALID = "GSSLSampleValid"
EVENT_TYPE_INVALID = "GSSLSampleInvalid"
PROVIDER = "sslChecker"

CONNECT_TIMEOUT = 10.0
EXPIRY_WINDOWS = [60, 30, 15, 5]


def build_context(root_cas: str = "") -> ssl.SSLContext:
    """
    Create the verifying client context, trusting root_cas instead of the system store when set.

    Raises:
        ConfigError: If the CA bundle cannot be read or holds no usable certificate
    """
    try:
        return ssl.create_default_context(cafile=root_cas or None)
    except OSError as e:
        raise ConfigError(f"Error reading CA file {root_cas}: {e}") from e


def fetch_certificate_chain(host: str, context: ssl.SSLContext,
                            timeout: float = CONNECT_TIMEOUT) -> List[x509.Certificate]:
    """
    Complete a verified TLS handshake and return the verified chain, leaf first.

    Args:
        host: "host:port" entry
        context: Verifying client context
        timeout: Connect and handshake timeout in seconds

    Returns:
        List[x509.Certificate]: Leaf, intermediates and trust anchor

    Raises:
        OSError: On connection, handshake or verification failure
    """
    hostname, port = host.rsplit(":", 1)
    with socket.create_connection((hostname, int(port)), timeout=timeout) as sock:
        with context.wrap_socket(sock, server_hostname=hostname) as tls:
            chain = tls._sslobj.get_verified_chain() or []
            return [x509.load_pem_x509_certificate(cert.public_bytes().encode("ascii"))
                    for cert in chain]


def common_name(cert: x509.Certificate) -> str:
    names = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    return str(names[0].value) if names else ""


def expiry_flags(not_after: datetime, now: datetime) -> Dict[int, bool]:
    """Map each expiry window in days to whether the certificate expires inside it."""
    return {days: now + timedelta(days=days) > not_after for days in EXPIRY_WINDOWS}


class SSLCheckCollector(BaseCollector):
    """Collector reporting unreachable hosts and certificates close to expiry."""

    name = "sslCheck"
    config_class = SSLCheckConfig

    @safe_collect
    async def collect(self) -> List[MetricRecord]:
        context = build_context(self.config.root_cas)
        hosts = self.config.host_list(self.logger)
        self.logger.info(f"Checking certificates for {len(hosts)} host(s)")
        results = await asyncio.gather(*(self.check_host(host, context) for host in hosts))
        return [record for records in results for record in records]

    async def check_host(self, host: str, context: ssl.SSLContext,
                         now: Optional[datetime] = None) -> List[MetricRecord]:
        """
        Check every certificate of one host's verified chain.

        Returns:
            One invalid-host record on failure, otherwise one expiry record per
            distinct certificate expiring within 60 days
        """
        loop = asyncio.get_event_loop()
        try:
            chain = await loop.run_in_executor(None, fetch_certificate_chain, host, context)
        except (OSError, ValueError) as e:
            self.logger.warning(f"TLS check failed for {host}: {e}")
            return [{
                "event_type": EVENT_TYPE_INVALID,
                "provider": PROVIDER,
                "host": host,
                "reason": str(e),
            }]

        now = now or datetime.now(timezone.utc)
        records = []
        seen = set()
        for cert in chain:
            # a certificate can appear in more than one verified path
            if cert.signature in seen:
                continue
            seen.add(cert.signature)
            record = self.format_certificate(cert, now)
            if record is not None:
                records.append(record)
        self.logger.debug(f"{host}: {len(seen)} certificate(s) checked, {len(records)} expiring")
        return records

    def format_certificate(self, cert: x509.Certificate, now: datetime) -> Optional[MetricRecord]:
        not_after = cert.not_valid_after_utc
        flags = expiry_flags(not_after, now)
        if not any(flags.values()):
            return None

        record: MetricRecord = {
            "event_type": EVENT_TYPE_VALID,
            "provider": PROVIDER,
            "host": common_name(cert),
            "expirationDate": not_after.isoformat(),
        }
        for days, expiring in flags.items():
            record[f"expiresIn{days}Days"] = expiring
        return record
