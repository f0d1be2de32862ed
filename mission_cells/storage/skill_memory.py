"""Per-role record of completed work."""

from typing import Dict, List, Optional

from .persistence import MappingStore

SKILLS_KEY = "skills"


class SkillMemory:
    """Skills learned by each role, persisted under the `skills` key."""

    def __init__(self, store: Optional[MappingStore] = None):
        self.store = store
        self.skills: Dict[str, List[str]] = {}

    def add_skill(self, role: str, skill: str) -> None:
        self.skills.setdefault(role, []).append(skill)

    def get_skills(self, role: str) -> List[str]:
        return list(self.skills.get(role, []))

    def describe(self, role: str, limit: int = 5) -> str:
        """Most recent skills as a comma-separated list, or "None"."""
        skills = self.get_skills(role)[-limit:]
        return ", ".join(skills) if skills else "None"

    def analytics(self) -> Dict[str, List[str]]:
        return {role: list(skills) for role, skills in self.skills.items()}

    def load(self) -> None:
        if self.store is not None:
            self.skills = self.store.load_mapping(SKILLS_KEY)

    def save(self) -> None:
        if self.store is not None:
            self.store.save_mapping(SKILLS_KEY, self.skills)
