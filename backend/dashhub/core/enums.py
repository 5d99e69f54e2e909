"""
权限、资源与调度相关的枚举定义

所有枚举均继承 str，可直接写入数据库字符串列，也可直接出现在 JSON 响应中。
"""
from enum import Enum


class Role(str, Enum):
    """用户角色（认证时解析一次，请求内不可变）"""
    ADMIN = "ADMIN"
    ANALYST = "ANALYST"
    VIEWER = "VIEWER"


class PermissionLevel(str, Enum):
    """Dashboard 权限级别: VIEW < EDIT < ADMIN"""
    VIEW = "VIEW"
    EDIT = "EDIT"
    ADMIN = "ADMIN"

    @property
    def rank(self) -> int:
        return _PERMISSION_RANK[self]

    def covers(self, required: "PermissionLevel") -> bool:
        """当前级别是否满足 required（ADMIN 隐含 EDIT，EDIT 隐含 VIEW）"""
        return self.rank >= PermissionLevel(required).rank


_PERMISSION_RANK = {
    PermissionLevel.VIEW: 1,
    PermissionLevel.EDIT: 2,
    PermissionLevel.ADMIN: 3,
}

# 通过分享接口可授予的级别；ADMIN 只来自所有权或管理端直接写入
SHAREABLE_PERMISSIONS = frozenset({PermissionLevel.VIEW, PermissionLevel.EDIT})


class ResourceKind(str, Enum):
    """RBAC 资源分类（非持久化实体）"""
    DASHBOARD = "dashboard"
    WIDGET = "widget"
    USER = "user"
    REPORT = "report"
    SCHEDULE = "schedule"


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class ExportFormat(str, Enum):
    """报表导出格式"""
    PDF = "PDF"
    XLSX = "XLSX"


class ExecutionStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
