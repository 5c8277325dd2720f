"""
Human-readable descriptions for admin activity log entries.

Pure functions of (action, entity type, details, metadata): the same inputs
always produce the same string. A template is used when the entity type has
one and the metadata carries what it needs; otherwise the caller's raw details
are returned unchanged.
"""
import enum
from typing import Any, Dict, Iterable, Optional

from core.utils import to_naive_utc

_POINT_FIELDS = {"points", "points_required", "redeemable_points", "points_reward"}
_NAME_FIELDS = {"first_name", "last_name", "full_name", "name"}
_QUOTED_FIELDS = {"title", "location"}
_PLAIN_FIELDS = {"email", "role", "stock"}
_DATE_FIELDS = {"start_date", "end_date", "date"}


def _display(value: Any) -> str:
    if isinstance(value, enum.Enum):
        value = value.value
    if value is None:
        return "none"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _truncate(value: Any, length: int = 30) -> str:
    text = _display(value)
    return text[:length] + "..." if len(text) > length else text


def _format_date(value: Any) -> str:
    if value is None or value == "":
        return _display(value)
    try:
        parsed = to_naive_utc(value)
    except (TypeError, ValueError):
        return _display(value)
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def _format_field(field: str, old: Any, new: Any) -> str:
    if field in _POINT_FIELDS:
        return f"points: {_display(old)} → {_display(new)}"
    if field in _NAME_FIELDS:
        return f'name: "{_display(old)}" → "{_display(new)}"'
    if field in _PLAIN_FIELDS:
        return f"{field}: {_display(old)} → {_display(new)}"
    if field in _QUOTED_FIELDS:
        return f'{field}: "{_display(old)}" → "{_display(new)}"'
    if field == "description":
        return f'description: "{_truncate(old)}" → "{_truncate(new)}"'
    if field in _DATE_FIELDS:
        return f"{field.replace('_', ' ')}: {_format_date(old)} → {_format_date(new)}"
    if isinstance(old, str) and isinstance(new, str):
        if len(old) > 20 or len(new) > 20:
            return f"{field}: updated"
        return f'{field}: "{old}" → "{new}"'
    return f"{field}: {_display(old)} → {_display(new)}"


def format_field_changes(
    fields_modified: Iterable[str],
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None
) -> str:
    """
    Describe field-level changes, e.g. "points: 100 → 150, stock: 5 → 10".

    Without both value maps only the field names are listed.
    """
    fields = [str(f) for f in fields_modified]
    if not old_values or not new_values:
        return f"modified {', '.join(fields)}"
    return ", ".join(_format_field(f, old_values.get(f), new_values.get(f)) for f in fields)


def _changes(metadata: Dict[str, Any]) -> Optional[str]:
    fields = metadata.get("fields_modified")
    if not fields:
        return None
    return format_field_changes(fields, metadata.get("old_values"), metadata.get("changes"))


def _describe_user(action: str, metadata: Dict[str, Any]) -> Optional[str]:
    if action == "CREATE":
        email = metadata.get("user_email") or "unknown"
        role = metadata.get("user_role") or metadata.get("role") or "user"
        return f"Created user: {email} ({_display(role)})"
    if action == "UPDATE":
        email = metadata.get("user_email") or "unknown user"
        if metadata.get("points_added"):
            return f"Added {metadata['points_added']} points to {email}"
        if metadata.get("old_role") and metadata.get("new_role"):
            return f"Changed role: {email} from {_display(metadata['old_role'])} to {_display(metadata['new_role'])}"
        changes = _changes(metadata)
        if changes:
            return f"Updated user: {email} - {changes}"
        return f"Updated user: {email}"
    if action == "DELETE":
        return f"Deleted user: {metadata.get('user_email') or 'unknown user'}"
    return None


def _describe_event(action: str, metadata: Dict[str, Any]) -> Optional[str]:
    title = metadata.get("event_title") or "Unknown Event"
    if action == "CREATE":
        return f'Created event: "{title}" on {metadata.get("event_date") or "unknown date"}'
    if action == "UPDATE":
        changes = _changes(metadata)
        if changes:
            return f'Updated event: "{title}" - {changes}'
        return f'Updated event: "{title}"'
    if action == "DELETE":
        count = metadata.get("participant_count") or 0
        suffix = f" ({count} participants affected)" if count > 0 else ""
        return f'Deleted event: "{title}"{suffix}'
    return None


def _describe_reward(action: str, metadata: Dict[str, Any]) -> Optional[str]:
    name = metadata.get("reward_name") or "Unknown Reward"
    if action == "CREATE":
        return f'Created reward: "{name}" ({metadata.get("points_required") or 0} points)'
    if action == "UPDATE":
        changes = _changes(metadata)
        if changes:
            return f'Updated reward: "{name}" - {changes}'
        return f'Updated reward: "{name}"'
    if action == "DELETE":
        count = metadata.get("total_redemptions") or 0
        suffix = f" ({count} redemptions)" if count > 0 else ""
        return f'Deleted reward: "{name}"{suffix}'
    return None


def _describe_feedback(action: str, metadata: Dict[str, Any]) -> Optional[str]:
    user_name = metadata.get("user_name") or "Unknown User"
    event_title = metadata.get("event_title")
    event_info = f' for "{event_title}"' if event_title else ""
    if action == "DELETE":
        rating = metadata.get("rating")
        rating_info = f" ({rating}★)" if rating else ""
        return f"Deleted feedback from {user_name}{event_info}{rating_info}"
    if action == "UPDATE":
        if metadata.get("action") == "mark_as_read":
            return f"Marked feedback as read from {user_name}{event_info}"
        return f"Updated feedback from {user_name}{event_info}"
    return None


def _describe_mission(action: str, metadata: Dict[str, Any]) -> Optional[str]:
    title = metadata.get("mission_title") or "Unknown Mission"
    if action == "CREATE":
        points = metadata.get("points_reward") or metadata.get("points") or 0
        return f'Created mission: "{title}" ({points} points)'
    if action == "UPDATE":
        user_name = metadata.get("user_name") or "Unknown User"
        if metadata.get("action") == "approve_submission":
            return f'Approved submission from {user_name} for "{title}"'
        if metadata.get("action") == "reject_submission":
            return f'Rejected submission from {user_name} for "{title}"'
        changes = _changes(metadata)
        if changes:
            return f'Updated mission: "{title}" - {changes}'
        return f'Updated mission: "{title}"'
    if action == "DELETE":
        count = metadata.get("submission_count") or 0
        suffix = f" ({count} submissions)" if count > 0 else ""
        return f'Deleted mission: "{title}"{suffix}'
    return None


def _describe_system(action: str, details: str) -> Optional[str]:
    if action == "EXPORT":
        return f"Exported {details}"
    return None


_DESCRIBERS = {
    "USER": _describe_user,
    "EVENT": _describe_event,
    "REWARD": _describe_reward,
    "FEEDBACK": _describe_feedback,
    "MISSION": _describe_mission,
}


def create_concise_description(
    action: Any,
    entity_type: Any,
    details: str,
    metadata: Optional[Dict[str, Any]] = None
) -> str:
    """Templated summary for an admin action, or `details` when no template applies."""
    action = _display(action).upper()
    entity_type = _display(entity_type).upper()
    metadata = metadata if isinstance(metadata, dict) else {}

    if entity_type == "SYSTEM":
        description = _describe_system(action, details)
    elif entity_type in _DESCRIBERS:
        description = _DESCRIBERS[entity_type](action, metadata)
    else:
        description = None
    return description if description is not None else details


def change_metadata(current: Any, changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Metadata describing an update: the fields touched, their previous values
    (read from `current`, when known) and the new values.
    """
    fields = [f for f in changes if f != "updated_at"]
    old_values = {f: getattr(current, f, None) for f in fields} if current is not None else {}
    return {
        "fields_modified": fields,
        "old_values": old_values,
        "changes": dict(changes),
    }


def raw_change_details(metadata: Dict[str, Any]) -> str:
    """Plain 'field: "old" → "new"' listing used as the fallback description."""
    old_values = metadata.get("old_values") or {}
    new_values = metadata.get("changes") or {}
    return ", ".join(
        f'{f}: "{_display(old_values.get(f, "unknown"))}" → "{_display(new_values.get(f))}"'
        for f in metadata.get("fields_modified") or []
    )
