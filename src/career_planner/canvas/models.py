"""
Canvas Models - the nine-section career goal profile.

completion_percentage is derived from the sections on every write and is
never accepted from a caller.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

SECTION_FIELDS = (
	"section_1_helpers",
	"section_2_activities",
	"section_3_value",
	"section_4_interactions",
	"section_5_convince",
	"section_6_skills",
	"section_7_motivation",
	"section_8_sacrifices",
	"section_9_outcomes",
)

# Labels used when the sections are handed to milestone generation
SECTION_LABELS = {
	"section_1_helpers": "Who I Help",
	"section_2_activities": "Activities I Do",
	"section_3_value": "Value I Provide",
	"section_4_interactions": "How I Interact",
	"section_5_convince": "How I Convince",
	"section_6_skills": "Skills I Need",
	"section_7_motivation": "What Motivates Me",
	"section_8_sacrifices": "Sacrifices I Will Make",
	"section_9_outcomes": "Outcomes I Want",
}

PROFILE_FIELDS = frozenset({"name", "target_role", "current_role"})


def compute_completion(sections: dict) -> int:
	"""round(100 * filled / 9), where a section counts as filled if it has non-blank text."""
	filled = sum(1 for key in SECTION_FIELDS if (sections.get(key) or "").strip())
	return round(100 * filled / len(SECTION_FIELDS))


class Canvas(BaseModel):
	"""A user's career canvas, optionally linked to one plan."""
	id: str
	owner_id: str
	name: str
	target_role: Optional[str] = None
	current_role: Optional[str] = None

	section_1_helpers: str = ""
	section_2_activities: str = ""
	section_3_value: str = ""
	section_4_interactions: str = ""
	section_5_convince: str = ""
	section_6_skills: str = ""
	section_7_motivation: str = ""
	section_8_sacrifices: str = ""
	section_9_outcomes: str = ""

	completion_percentage: int = Field(default=0, ge=0, le=100)
	plan_id: Optional[str] = Field(default=None, description="Linked plan, if any")
	display_order: int = 0
	created_at: str = Field(default_factory=lambda: datetime.now().isoformat())
	updated_at: str = Field(default_factory=lambda: datetime.now().isoformat())

	@classmethod
	def from_row(cls, row: Any) -> "Canvas":
		return cls(**{key: row[key] for key in row.keys()})

	def sections(self) -> dict[str, str]:
		return {key: getattr(self, key) for key in SECTION_FIELDS}

	@property
	def is_linked(self) -> bool:
		return self.plan_id is not None
