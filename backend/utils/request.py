"""
HTTP请求工具
"""

from typing import Dict, Optional

from fastapi import Request

# 记录请求头快照时需要脱敏的字段
SENSITIVE_HEADERS = {"authorization", "cookie", "x-token"}


def get_client_ip(request: Request) -> str:
    """
    获取客户端真实IP

    依次尝试 X-Forwarded-For（取第一个）、X-Real-IP、socket 地址
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


def get_proxy_ip(request: Request) -> Optional[str]:
    """获取最后一跳代理IP（X-Forwarded-For 中至少有两个地址时）"""
    forwarded = request.headers.get("X-Forwarded-For")
    if not forwarded:
        return None
    hops = [ip.strip() for ip in forwarded.split(",") if ip.strip()]
    return hops[-1] if len(hops) > 1 else None


def get_user_agent(request: Request) -> str:
    """获取用户代理"""
    return request.headers.get("User-Agent", "")


def get_header_snapshot(request: Request) -> Dict[str, str]:
    """请求头快照，敏感字段脱敏"""
    return {
        key: "******" if key.lower() in SENSITIVE_HEADERS else value
        for key, value in request.headers.items()
    }
