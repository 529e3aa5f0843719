from __future__ import annotations

from urllib.parse import urlencode


def build_socks_link(host: str, port: str, user: str = "", password: str = "") -> str:
    """Telegram deep link that adds the SOCKS proxy; empty if host or port is unset."""
    if not host or not port:
        return ""
    params = {"server": host, "port": port}
    if user:
        params["user"] = user
    if password:
        params["pass"] = password
    return "tg://socks?" + urlencode(params)


SETTINGS_LINK = "tg://settings"
