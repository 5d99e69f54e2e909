"""
角色权限判定（RBAC）

规则表：
| 角色    | dashboard/widget | user     | report/schedule |
|---------|------------------|----------|-----------------|
| ADMIN   | 全部             | 全部     | 全部            |
| ANALYST | 全部             | 仅 read  | 全部            |
| VIEWER  | 仅 read          | 无       | 仅 read         |

ADMIN 与资源无关：任意 (resource, action) 组合都允许，包括未识别的资源。
其他角色遇到未识别的资源或操作一律拒绝。判定函数对任意输入都返回 bool，从不抛异常。
"""
import logging
from enum import Enum
from typing import Dict, FrozenSet, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from dashhub import crud
from dashhub.core.enums import Action, ResourceKind, Role

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

ALL_ACTIONS: FrozenSet[Action] = frozenset(Action)
READ_ONLY: FrozenSet[Action] = frozenset({Action.READ})
NO_ACTIONS: FrozenSet[Action] = frozenset()

# 非 ADMIN 角色的规则表，每个角色必须覆盖全部 ResourceKind
ROLE_RULES: Dict[Role, Dict[ResourceKind, FrozenSet[Action]]] = {
    Role.ANALYST: {
        ResourceKind.DASHBOARD: ALL_ACTIONS,
        ResourceKind.WIDGET: ALL_ACTIONS,
        ResourceKind.USER: READ_ONLY,
        ResourceKind.REPORT: ALL_ACTIONS,
        ResourceKind.SCHEDULE: ALL_ACTIONS,
    },
    Role.VIEWER: {
        ResourceKind.DASHBOARD: READ_ONLY,
        ResourceKind.WIDGET: READ_ONLY,
        ResourceKind.USER: NO_ACTIONS,
        ResourceKind.REPORT: READ_ONLY,
        ResourceKind.SCHEDULE: READ_ONLY,
    },
}


def _check_rule_table() -> None:
    """新增 Role 或 ResourceKind 时规则表必须同步补齐，否则模块导入即失败"""
    for role in Role:
        if role is Role.ADMIN:
            continue
        rules = ROLE_RULES.get(role)
        if rules is None:
            raise RuntimeError(f"Missing RBAC rules for role {role.value}")
        missing = set(ResourceKind) - set(rules)
        if missing:
            raise RuntimeError(
                f"RBAC rules for role {role.value} do not cover: {sorted(k.value for k in missing)}"
            )


_check_rule_table()


def _coerce(enum_cls: Type[E], value: object) -> Optional[E]:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return None


def check_permission(role: object, resource: object, action: object) -> bool:
    """
    判断角色是否可以对资源执行操作

    Args:
        role: Role 或其字符串值
        resource: ResourceKind 或字符串（如 'dashboard'）
        action: Action 或字符串（如 'read'）

    Returns:
        是否允许
    """
    resolved_role = _coerce(Role, role)
    if resolved_role is None:
        return False

    if resolved_role is Role.ADMIN:
        return True

    resource_kind = _coerce(ResourceKind, resource)
    resolved_action = _coerce(Action, action)
    if resource_kind is None or resolved_action is None:
        return False

    return resolved_action in ROLE_RULES[resolved_role][resource_kind]


def check_user_permission(db: Session, user_id: int, resource: object, action: object) -> bool:
    """
    先解析用户角色再判定权限；用户不存在时对所有组合返回 False
    """
    role = crud.user.get_role(db, user_id=user_id)
    if role is None:
        logger.debug(f"用户 {user_id} 不存在或角色无效，拒绝 {resource}:{action}")
        return False
    return check_permission(role, resource, action)
