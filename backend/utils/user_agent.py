"""
User-Agent 解析
识别浏览器、渲染引擎、操作系统和设备类型
"""

import re
from typing import Optional

from pydantic import BaseModel

UNKNOWN = "Unknown"

# 匹配顺序有意义：Edge/Opera 的 UA 中同样包含 Chrome 与 Safari
_BROWSER_PATTERNS = [
    ("Edge", re.compile(r"Edg(?:e|A|iOS)?/([\d.]+)"), "Blink"),
    ("Opera", re.compile(r"(?:OPR|Opera)/([\d.]+)"), "Blink"),
    ("Chrome", re.compile(r"(?:Chrome|CriOS)/([\d.]+)"), "Blink"),
    ("Firefox", re.compile(r"(?:Firefox|FxiOS)/([\d.]+)"), "Gecko"),
    ("Safari", re.compile(r"Version/([\d.]+).*Safari/"), "WebKit"),
    ("IE", re.compile(r"(?:MSIE |Trident/.*rv:)([\d.]+)"), "Trident"),
]

_WINDOWS_VERSIONS = {
    "10.0": "10",
    "6.3": "8.1",
    "6.2": "8",
    "6.1": "7",
    "6.0": "Vista",
    "5.2": "XP",
    "5.1": "XP",
}

_WINDOWS = re.compile(r"Windows NT ([\d.]+)")
_ANDROID = re.compile(r"Android ([\d.]+)")
_IOS = re.compile(r"(?:iPhone|iPad|iPod).*? OS ([\d_]+)")
_MAC = re.compile(r"Mac OS X ([\d_.]+)")

_TABLET = re.compile(r"iPad|Tablet|PlayBook|Silk|(?:Android(?!.*Mobile))", re.IGNORECASE)
_MOBILE = re.compile(r"Mobile|iPhone|iPod|Android.*Mobile|Windows Phone|BlackBerry", re.IGNORECASE)
_BOT = re.compile(r"bot|crawler|spider|curl|wget|python-requests|httpx", re.IGNORECASE)


class UserAgentInfo(BaseModel):
    """解析结果"""
    browser_name: str = UNKNOWN
    browser_version: Optional[str] = None
    browser_engine: str = UNKNOWN
    os_name: str = UNKNOWN
    os_version: Optional[str] = None
    device_type: str = UNKNOWN


def _parse_browser(ua: str, info: UserAgentInfo) -> None:
    for name, pattern, engine in _BROWSER_PATTERNS:
        match = pattern.search(ua)
        if match:
            info.browser_name = name
            info.browser_version = match.group(1)
            info.browser_engine = engine
            return
    if "AppleWebKit" in ua:
        info.browser_engine = "WebKit"


def _parse_os(ua: str, info: UserAgentInfo) -> None:
    # Android 与 iOS 需要先于 Linux/Mac 判断
    match = _ANDROID.search(ua)
    if match:
        info.os_name, info.os_version = "Android", match.group(1)
        return
    match = _IOS.search(ua)
    if match:
        info.os_name, info.os_version = "iOS", match.group(1).replace("_", ".")
        return
    match = _WINDOWS.search(ua)
    if match:
        info.os_name = "Windows"
        info.os_version = _WINDOWS_VERSIONS.get(match.group(1), match.group(1))
        return
    match = _MAC.search(ua)
    if match:
        info.os_name, info.os_version = "macOS", match.group(1).replace("_", ".")
        return
    if "Linux" in ua:
        info.os_name = "Linux"


def _parse_device(ua: str, info: UserAgentInfo) -> None:
    if _BOT.search(ua):
        info.device_type = "Bot"
    elif _TABLET.search(ua):
        info.device_type = "Tablet"
    elif _MOBILE.search(ua):
        info.device_type = "Mobile"
    elif info.os_name in ("Windows", "macOS", "Linux"):
        info.device_type = "Desktop"


def parse_user_agent(user_agent: Optional[str]) -> UserAgentInfo:
    """解析 User-Agent 字符串，空值返回全 Unknown"""
    info = UserAgentInfo()
    if not user_agent:
        return info
    _parse_browser(user_agent, info)
    _parse_os(user_agent, info)
    _parse_device(user_agent, info)
    return info
