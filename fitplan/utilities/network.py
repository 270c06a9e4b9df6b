"""Helpers for announcing where the FitPlan API can be reached."""
import socket
from typing import List


def get_local_ip() -> str:
    """Return the address of the interface used for outbound traffic, or '127.0.0.1'.

    Connecting a UDP socket sends nothing; it only makes the OS pick a source address.
    """
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        s.connect(("8.8.8.8", 80))
        ip = str(s.getsockname()[0])
    except OSError:
        ip = "127.0.0.1"
    finally:
        s.close()
    return ip


def server_urls(host: str, port: int) -> List[str]:
    """URLs to print at startup: localhost first, then the LAN address when bound to all interfaces."""
    urls = [f"http://localhost:{port}"]
    if host in ("0.0.0.0", "::"):
        local_ip = get_local_ip()
        if local_ip not in ("127.0.0.1", "localhost"):
            urls.append(f"http://{local_ip}:{port}")
    elif host not in ("127.0.0.1", "localhost"):
        urls.append(f"http://{host}:{port}")
    return urls
