from collections.abc import Mapping
from typing import Any, Iterable, NamedTuple

from pydantic import BaseModel, ConfigDict, field_validator

from .taxonomy import merge_departments


DEFAULT_THEME = "Other"
DEFAULT_DEPARTMENT = "Uncategorized"
DEFAULT_CATEGORY = "Uncategorized"
PREFERRED_THEME = "Academic"


def _normalize(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


class ProblemStatement(BaseModel):
    """A problem statement row with its grouping fields normalized.

    Columns other than the three grouping keys are carried through untouched.
    """

    model_config = ConfigDict(extra="allow")

    id: Any = None
    theme: str = DEFAULT_THEME
    department: str = DEFAULT_DEPARTMENT
    category: str = DEFAULT_CATEGORY

    @field_validator("theme", mode="before")
    @classmethod
    def normalize_theme(cls, value):
        return _normalize(value, DEFAULT_THEME)

    @field_validator("department", mode="before")
    @classmethod
    def normalize_department(cls, value):
        return _normalize(value, DEFAULT_DEPARTMENT)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, value):
        return _normalize(value, DEFAULT_CATEGORY)


GroupedTree = dict[str, dict[str, dict[str, list[ProblemStatement]]]]


class GroupedView(NamedTuple):
    tree: GroupedTree
    primary_themes: dict[str, str]
    departments: list[str]


def _clean_roster(department_roster: Iterable[Any] | None) -> set[str]:
    return set(merge_departments(department_roster))


def _as_problem(raw) -> ProblemStatement:
    if isinstance(raw, ProblemStatement):
        return raw
    if isinstance(raw, Mapping):
        return ProblemStatement.model_validate(dict(raw))
    return ProblemStatement()


def build_grouped_tree(problems, department_roster=None) -> GroupedView:
    """Group problems by theme → department → category and pick a primary theme per department.

    Problems keep their input order inside each bucket, so callers sort before
    calling. A department with any Academic problem is shown under Academic;
    otherwise its most frequent theme wins, ties going to the theme seen first.
    Roster-only departments get "Other".

    Records may be mappings or ProblemStatement instances; anything else
    (None, a bare id) is grouped as an all-default record.
    """
    if not isinstance(problems, (list, tuple)):
        raise TypeError(f"problems must be a list, got {type(problems).__name__}")

    tree: GroupedTree = {}
    theme_counts: dict[str, dict[str, int]] = {}

    for raw in problems:
        problem = _as_problem(raw)
        by_dept = tree.setdefault(problem.theme, {})
        by_cat = by_dept.setdefault(problem.department, {})
        by_cat.setdefault(problem.category, []).append(problem)

        counts = theme_counts.setdefault(problem.department, {})
        counts[problem.theme] = counts.get(problem.theme, 0) + 1

    departments = sorted(set(theme_counts) | _clean_roster(department_roster))

    primary_themes = {}
    for dept in departments:
        counts = theme_counts.get(dept, {})
        if counts.get(PREFERRED_THEME, 0) > 0:
            primary_themes[dept] = PREFERRED_THEME
            continue
        if not counts:
            primary_themes[dept] = DEFAULT_THEME
            continue
        best_theme, best_count = None, 0
        for theme, count in counts.items():
            # strict > keeps the first-seen theme on ties
            if count > best_count:
                best_theme, best_count = theme, count
        primary_themes[dept] = best_theme

    return GroupedView(tree, primary_themes, departments)


def ordered_theme_keys(tree: GroupedTree) -> list[str]:
    """Academic first when present, then the rest alphabetically."""
    keys = [PREFERRED_THEME] if PREFERRED_THEME in tree else []
    keys.extend(sorted(t for t in tree if t != PREFERRED_THEME))
    return keys


def departments_under_theme(tree: GroupedTree, primary_themes: dict[str, str],
                            department_roster, theme: str) -> list[str]:
    selected = set()
    for dept in tree.get(theme, {}):
        primary = primary_themes.get(dept)
        if not primary or primary == theme:
            selected.add(dept)
    for dept in _clean_roster(department_roster):
        if primary_themes.get(dept) == theme:
            selected.add(dept)
    return sorted(selected)


def build_sections(view: GroupedView, department_roster=None) -> list[dict]:
    """Shape a grouped view into the nested sections the departments page renders."""
    sections = []
    for theme in ordered_theme_keys(view.tree):
        depts_map = view.tree[theme]
        problem_count = sum(
            len(items) for by_cat in depts_map.values() for items in by_cat.values()
        )
        departments = []
        for dept in departments_under_theme(view.tree, view.primary_themes, department_roster, theme):
            categories = [
                {"name": cat, "problems": [p.model_dump() for p in items]}
                for cat, items in depts_map.get(dept, {}).items()
            ]
            departments.append({"name": dept, "categories": categories})
        sections.append({
            "theme": theme,
            "problem_count": problem_count,
            "departments": departments,
        })
    return sections
