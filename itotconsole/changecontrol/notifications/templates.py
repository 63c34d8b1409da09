"""
Notification Templates

Provides:
- Templates with {{variable}} substitution and defaults
- Built-in templates, one per workflow event
- Name-keyed lookup and rendering
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

from ..events.bus import WorkflowEventType

_VARIABLE = re.compile(r'\{\{(\w+)\}\}')


@dataclass(frozen=True)
class NotificationTemplate:
    """
    Subject and body with {{variable}} placeholders

    A variable that is missing or None falls back to its default; with
    no default, rendering fails.
    """
    name: str
    subject: str
    body: str
    defaults: Dict[str, str] = field(default_factory=dict, hash=False)
    description: str = ""

    @property
    def variables(self) -> FrozenSet[str]:
        return frozenset(_VARIABLE.findall(self.subject)) | frozenset(_VARIABLE.findall(self.body))

    def missing(self, values: Dict[str, Any]) -> List[str]:
        return sorted(
            name for name in self.variables
            if values.get(name) is None and name not in self.defaults
        )

    def render(self, values: Dict[str, Any]) -> Dict[str, str]:
        """
        Fill in the placeholders

        Raises:
            ValueError: if a variable has neither a value nor a default
        """
        missing = self.missing(values)
        if missing:
            raise ValueError(f"Template {self.name} is missing: {', '.join(missing)}")

        merged = dict(self.defaults)
        merged.update({k: str(v) for k, v in values.items() if v is not None})

        def fill(text: str) -> str:
            return _VARIABLE.sub(lambda m: merged[m.group(1)], text)

        return {"subject": fill(self.subject), "body": fill(self.body)}


_NO_COMMENT = {"comment": "-"}

BUILTIN_TEMPLATES = (
    NotificationTemplate(
        name=WorkflowEventType.PROPOSED.value,
        subject="Modification {{modification_id}} recorded",
        body="Your modification {{modification_id}} was created in status {{to_status}}. "
             "Submit it when it is ready for review.",
        description="Acknowledgement to the proposer"
    ),
    NotificationTemplate(
        name=WorkflowEventType.SUBMITTED.value,
        subject="Review requested: {{modification_id}}",
        body="{{actor_id}} submitted modification {{modification_id}} "
             "(proposed by {{proposer_id}}) for review.\nComment: {{comment}}",
        defaults=_NO_COMMENT,
        description="Review request to reviewers"
    ),
    NotificationTemplate(
        name=WorkflowEventType.APPROVED.value,
        subject="Modification {{modification_id}} approved",
        body="{{actor_id}} approved your modification {{modification_id}}.\nComment: {{comment}}",
        defaults=_NO_COMMENT,
        description="Approval notice to the proposer"
    ),
    NotificationTemplate(
        name=WorkflowEventType.REJECTED.value,
        subject="Modification {{modification_id}} rejected",
        body="{{actor_id}} rejected your modification {{modification_id}}.\nComment: {{comment}}",
        defaults=_NO_COMMENT,
        description="Rejection notice to the proposer"
    ),
    NotificationTemplate(
        name=WorkflowEventType.APPLIED.value,
        subject="Modification {{modification_id}} applied",
        body="{{actor_id}} applied your modification {{modification_id}} to the infrastructure.",
        description="Application notice to the proposer"
    ),
    NotificationTemplate(
        name=WorkflowEventType.CANCELLED.value,
        subject="Modification {{modification_id}} cancelled",
        body="{{actor_id}} cancelled your modification {{modification_id}} "
             "(was {{from_status}}).\nComment: {{comment}}",
        defaults=_NO_COMMENT,
        description="Cancellation notice to the proposer"
    ),
)


class TemplateManager:
    """Templates by name"""

    def __init__(self, builtin: bool = True):
        self._templates: Dict[str, NotificationTemplate] = {}
        if builtin:
            for template in BUILTIN_TEMPLATES:
                self.register(template)

    def register(self, template: NotificationTemplate) -> NotificationTemplate:
        """Add a template, replacing any template with the same name"""
        self._templates[template.name] = template
        return template

    def get(self, name: str) -> Optional[NotificationTemplate]:
        return self._templates.get(name)

    def names(self) -> List[str]:
        return sorted(self._templates)

    def render(self, name: str, values: Dict[str, Any]) -> Optional[Dict[str, str]]:
        """Render by name; None if there is no such template"""
        template = self._templates.get(name)
        if template is None:
            return None
        return template.render(values)
