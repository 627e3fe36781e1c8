"""Event-type classification shared by the preference resolver and the list filter.

Event types are free-form strings owned by the producing business modules
(``task_assigned``, ``deal_won``, ``agent_job_failed`` ...). Two views are derived
from them here:

* the preference flag that gates the event (``notify_task_updates`` etc.), chosen by
  the first matching rule, most specific first;
* the UI categories the event is listed under, derived from that flag plus a few
  explicit memberships for event types that belong to two tabs.
"""

from dataclasses import dataclass

from notifyhub.domain.enums import NotificationCategory


@dataclass(frozen=True)
class _FlagRule:
    flag: str
    contains: tuple[str, ...] = ()
    prefixes: tuple[str, ...] = ()

    def matches(self, event_type: str) -> bool:
        return any(token in event_type for token in self.contains) or event_type.startswith(self.prefixes)


_FLAG_RULES: tuple[_FlagRule, ...] = (
    _FlagRule("notify_mentions", contains=("mention",)),
    _FlagRule("notify_comments", contains=("comment",)),
    _FlagRule("notify_task_assignments", contains=("task_assigned", "task_reassigned", "assignment")),
    _FlagRule("notify_task_due_soon", contains=("task_due",)),
    _FlagRule("notify_task_overdue", contains=("task_overdue",)),
    _FlagRule("notify_task_updates", prefixes=("task_", "subtask_")),
    _FlagRule("notify_deal_won", contains=("deal_won",)),
    _FlagRule("notify_deal_lost", contains=("deal_lost",)),
    _FlagRule("notify_deal_updates", prefixes=("deal_",)),
    _FlagRule("notify_document_shares", prefixes=("document_",)),
    _FlagRule("notify_team_updates", prefixes=("workspace_", "team_", "crm_contact")),
    _FlagRule("notify_achievements", contains=("achievement",)),
    _FlagRule("notify_agent_updates", prefixes=("agent_",)),
    _FlagRule("notify_market_briefs", contains=("market_brief",)),
    _FlagRule("notify_sync_updates", prefixes=("sync_",)),
)

_FLAG_CATEGORY: dict[str, NotificationCategory] = {
    "notify_mentions": NotificationCategory.MENTIONS,
    "notify_comments": NotificationCategory.MENTIONS,
    "notify_task_assignments": NotificationCategory.TASKS,
    "notify_task_due_soon": NotificationCategory.TASKS,
    "notify_task_overdue": NotificationCategory.TASKS,
    "notify_task_updates": NotificationCategory.TASKS,
    "notify_deal_won": NotificationCategory.DEALS,
    "notify_deal_lost": NotificationCategory.DEALS,
    "notify_deal_updates": NotificationCategory.DEALS,
    "notify_document_shares": NotificationCategory.DOCUMENTS,
    "notify_team_updates": NotificationCategory.TEAM,
    "notify_achievements": NotificationCategory.ACHIEVEMENTS,
    "notify_agent_updates": NotificationCategory.AGENTS,
    "notify_market_briefs": NotificationCategory.AGENTS,
    "notify_sync_updates": NotificationCategory.AGENTS,
}

# Event types listed under a tab their preference flag does not imply.
_EXTRA_CATEGORIES: dict[str, tuple[NotificationCategory, ...]] = {
    "document_comment": (NotificationCategory.DOCUMENTS,),
}


def _normalize(event_type: str) -> str:
    return event_type.strip().lower()


def preference_flag_for(event_type: str) -> str | None:
    """Return the preference flag gating ``event_type``, or None when unmapped."""
    normalized = _normalize(event_type)
    for rule in _FLAG_RULES:
        if rule.matches(normalized):
            return rule.flag
    return None


def categories_for(event_type: str) -> list[NotificationCategory]:
    normalized = _normalize(event_type)
    found: list[NotificationCategory] = []
    flag = preference_flag_for(normalized)
    if flag is not None:
        found.append(_FLAG_CATEGORY[flag])
    for category in _EXTRA_CATEGORIES.get(normalized, ()):
        if category not in found:
            found.append(category)
    return found
