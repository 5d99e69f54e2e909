"""
DashHub 异常体系

每个异常携带调用方应映射的 HTTP 状态码与错误码：
- 404 类（资源不存在）必须先于 403 类（权限不足）判定
- DeliveryFailureError 只在调度执行内部使用，不会抛给 API 调用方
"""
from typing import Any, Dict, Optional

from fastapi import status


class DashHubError(Exception):
    """DashHub 基础异常"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "internal_error"
    default_message: str = "Internal error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# 认证 / 授权 (401 / 403)
# ============================================================================

class UnauthenticatedError(DashHubError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "unauthenticated"
    default_message = "Not authenticated"


class AccessDeniedError(DashHubError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "access_denied"
    default_message = "Access denied"


class InsufficientPermissionsError(DashHubError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "insufficient_permissions"
    default_message = "Insufficient permissions"


class NotOwnerError(DashHubError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "not_owner"
    default_message = "Only the dashboard owner can perform this action"


class OnlyOwnerCanDeleteError(DashHubError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "only_owner_can_delete"
    default_message = "Only dashboard owner can delete"


# ============================================================================
# 资源不存在 (404)
# ============================================================================

class UserNotFoundError(DashHubError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "user_not_found"
    default_message = "User not found"


class ShareNotFoundError(DashHubError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "share_not_found"
    default_message = "Share not found"


class DashboardNotFoundError(DashHubError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "dashboard_not_found"
    default_message = "Dashboard not found"


class ScheduleNotFoundError(DashHubError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "schedule_not_found"
    default_message = "Schedule not found"


# ============================================================================
# 参数校验 (400)
# ============================================================================

class ValidationFailedError(DashHubError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "validation_error"
    default_message = "Validation error"


class SelfShareError(ValidationFailedError):
    error_code = "self_share"
    default_message = "Cannot share dashboard with yourself"


class InvalidCronExpressionError(ValidationFailedError):
    error_code = "invalid_cron_expression"
    default_message = "Invalid CRON expression"


class InvalidEmailError(ValidationFailedError):
    error_code = "invalid_email"
    default_message = "Invalid email"


class InvalidPermissionError(ValidationFailedError):
    error_code = "invalid_permission"
    default_message = "Permission must be one of VIEW, EDIT"


# ============================================================================
# 调度执行
# ============================================================================

class DeliveryFailureError(DashHubError):
    """单个收件人投递失败（非致命，按收件人累计）"""
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "delivery_failure"
    default_message = "Failed to send email"

    def __init__(self, recipient: str, message: Optional[str] = None):
        self.recipient = recipient
        super().__init__(message, details={"recipient": recipient})
