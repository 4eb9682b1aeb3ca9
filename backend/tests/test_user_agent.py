"""
User-Agent 解析测试
"""

import pytest

from utils.user_agent import parse_user_agent

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
EDGE_WINDOWS = CHROME_WINDOWS + " Edg/120.0.2210.91"
FIREFOX_LINUX = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
SAFARI_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Safari/605.1.15"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_2 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Mobile/15E148 Safari/604.1"
)
CHROME_ANDROID = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.6099.144 Mobile Safari/537.36"
)
ANDROID_TABLET = (
    "Mozilla/5.0 (Linux; Android 13; SM-X700) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
IE_11 = "Mozilla/5.0 (Windows NT 6.1; Trident/7.0; rv:11.0) like Gecko"


class TestParseUserAgent:

    def test_empty(self):
        info = parse_user_agent(None)
        assert info.browser_name == "Unknown"
        assert info.os_name == "Unknown"
        assert info.device_type == "Unknown"

    def test_chrome_on_windows(self):
        info = parse_user_agent(CHROME_WINDOWS)
        assert (info.browser_name, info.browser_version, info.browser_engine) == ("Chrome", "120.0.0.0", "Blink")
        assert (info.os_name, info.os_version) == ("Windows", "10")
        assert info.device_type == "Desktop"

    def test_edge_before_chrome(self):
        info = parse_user_agent(EDGE_WINDOWS)
        assert info.browser_name == "Edge"
        assert info.browser_version == "120.0.2210.91"

    def test_firefox_on_linux(self):
        info = parse_user_agent(FIREFOX_LINUX)
        assert (info.browser_name, info.browser_engine) == ("Firefox", "Gecko")
        assert info.os_name == "Linux"
        assert info.device_type == "Desktop"

    def test_safari_on_mac(self):
        info = parse_user_agent(SAFARI_MAC)
        assert (info.browser_name, info.browser_version, info.browser_engine) == ("Safari", "17.2", "WebKit")
        assert (info.os_name, info.os_version) == ("macOS", "10.15.7")

    def test_iphone(self):
        info = parse_user_agent(SAFARI_IPHONE)
        assert (info.os_name, info.os_version) == ("iOS", "17.2")
        assert info.device_type == "Mobile"

    def test_android_phone(self):
        info = parse_user_agent(CHROME_ANDROID)
        assert (info.os_name, info.os_version) == ("Android", "14")
        assert info.device_type == "Mobile"

    def test_android_tablet(self):
        assert parse_user_agent(ANDROID_TABLET).device_type == "Tablet"

    def test_ie(self):
        info = parse_user_agent(IE_11)
        assert (info.browser_name, info.browser_version, info.browser_engine) == ("IE", "11.0", "Trident")
        assert info.os_version == "7"

    @pytest.mark.parametrize("ua", ["python-httpx/0.27.0", "Googlebot/2.1 (+http://www.google.com/bot.html)"])
    def test_bots(self, ua):
        assert parse_user_agent(ua).device_type == "Bot"
