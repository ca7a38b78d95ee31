"""Text rendering of the roles screen for the CLI.

This is a presentation layer only. It decides which actions to offer from the
capability flags the API computed (``manageable_role_ids``, ``can_reorder``)
and never evaluates hierarchy rules itself; the API still checks every call.
"""

from typing import Any, Dict, List, Optional, Tuple

UP = "up"
DOWN = "down"


def _neighbor(roles: List[Dict[str, Any]], index: int, direction: str) -> Optional[Dict[str, Any]]:
    # roles arrive highest position first, so "up" is the previous entry
    other = index - 1 if direction == UP else index + 1
    if 0 <= other < len(roles):
        return roles[other]
    return None


def available_moves(payload: Dict[str, Any], role_id: int) -> List[str]:
    """Directions the move controls should be shown for."""
    if not payload.get("can_reorder"):
        return []
    manageable = set(payload.get("manageable_role_ids", []))
    if role_id not in manageable:
        return []
    roles = payload.get("roles", [])
    index = next((i for i, r in enumerate(roles) if r["id"] == role_id), None)
    if index is None:
        return []
    moves = []
    for direction in (UP, DOWN):
        other = _neighbor(roles, index, direction)
        if other is not None and other["id"] in manageable:
            moves.append(direction)
    return moves


def plan_move(payload: Dict[str, Any], role_id: int, direction: str) -> List[Tuple[int, int]]:
    """Position updates that swap a role with its neighbor.

    Returns two ``(role_id, new_position)`` calls to issue in order; each is
    authorized by the API on its own.

    Raises:
        ValueError: the move is not offered for this role.
    """
    if direction not in (UP, DOWN):
        raise ValueError(f"Unknown direction '{direction}'")
    if direction not in available_moves(payload, role_id):
        raise ValueError(f"Role {role_id} cannot be moved {direction}")
    roles = payload["roles"]
    index = next(i for i, r in enumerate(roles) if r["id"] == role_id)
    role = roles[index]
    other = _neighbor(roles, index, direction)
    return [
        (role["id"], other["position"]),
        (other["id"], role["position"]),
    ]


def render_roles(payload: Dict[str, Any]) -> List[str]:
    """One line per role with the actions the caller is allowed to see."""
    roles = payload.get("roles", [])
    if not roles:
        return ["No roles defined."]
    manageable = set(payload.get("manageable_role_ids", []))
    lines = []
    for role in roles:
        actions = []
        if role["id"] in manageable:
            actions.extend(["edit", "delete"])
            actions.extend(f"move-{d}" for d in available_moves(payload, role["id"]))
        perms = ", ".join(role.get("permissions", [])) or "-"
        suffix = f"  [{' '.join(actions)}]" if actions else ""
        lines.append(f"{role['position']:>5}  #{role['id']:<4} {role['name']} ({perms}){suffix}")
    return lines
