from ipaddress import ip_address

from fastapi import Request

from leadcapture.settings import Config

_FORWARDED_IP_HEADERS = (
    "x-nf-client-connection-ip",
    "cf-connecting-ip",
    "x-forwarded-for",
    "x-real-ip",
    "client-ip",
)


def normalize_ip(value: str | None) -> str | None:
    if not value:
        return None

    candidate = value.split(",", 1)[0].strip()
    try:
        return str(ip_address(candidate))
    except ValueError:
        return None


class RequestIpResolver:
    def __init__(self, config: Config):
        self._trust_forwarded_ip = config.antispam.trust_forwarded_ip

    def get_request_ip(self, request: Request) -> str | None:
        if self._trust_forwarded_ip:
            for header in _FORWARDED_IP_HEADERS:
                ip = normalize_ip(request.headers.get(header))
                if ip:
                    return ip

        if request.client and request.client.host:
            return normalize_ip(request.client.host)

        return None


__all__ = (
    "RequestIpResolver",
    "normalize_ip",
)
