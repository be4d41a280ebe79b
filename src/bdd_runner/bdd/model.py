"""
Parsed Gherkin document tree consumed by the execution engine.

The tree is produced by :mod:`bdd_runner.bdd.parser` (or built directly in
tests) and is never mutated by the engine: outline expansion works on deep
copies.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Union


@dataclass
class DataTable:
    """A step data table. The first row is the header row."""
    rows: List[List[str]] = field(default_factory=list)

    @property
    def headers(self) -> List[str]:
        return list(self.rows[0]) if self.rows else []

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[List[str]]:
        return iter(self.rows)

    def data_rows(self) -> List[List[str]]:
        """All rows except the header row"""
        return [list(row) for row in self.rows[1:]]

    def cell(self, row: int, column: int) -> str:
        """Cell by 0-based row and column index, empty string when out of range"""
        if row < 0 or row >= len(self.rows):
            return ""
        cells = self.rows[row]
        if column < 0 or column >= len(cells):
            return ""
        return cells[column]

    def get(self, row: int, column_name: str) -> str:
        """Cell by row index and header name (case-insensitive)"""
        wanted = column_name.lower()
        for index, header in enumerate(self.headers):
            if header.lower() == wanted:
                return self.cell(row, index)
        return ""

    def as_dicts(self) -> List[Dict[str, str]]:
        """Data rows keyed by header"""
        headers = self.headers
        return [dict(zip(headers, row)) for row in self.rows[1:]]


@dataclass
class Step:
    keyword: str
    text: str
    table: Optional[DataTable] = None
    doc_string: Optional[str] = None
    line: int = 0


@dataclass
class Background:
    steps: List[Step] = field(default_factory=list)
    name: str = ""
    line: int = 0


@dataclass
class Examples:
    """One Examples block of a Scenario Outline"""
    header: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)
    name: str = ""
    tags: List[str] = field(default_factory=list)
    line: int = 0


@dataclass
class Scenario:
    name: str
    steps: List[Step] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    examples: List[Examples] = field(default_factory=list)
    keyword: str = "Scenario"
    description: str = ""
    line: int = 0

    @property
    def is_outline(self) -> bool:
        return bool(self.examples)


@dataclass
class Rule:
    name: str
    scenarios: List[Scenario] = field(default_factory=list)
    background: Optional[Background] = None
    tags: List[str] = field(default_factory=list)
    line: int = 0


@dataclass
class Feature:
    name: str
    children: List[Union[Scenario, Rule]] = field(default_factory=list)
    background: Optional[Background] = None
    tags: List[str] = field(default_factory=list)
    description: str = ""
    file: Optional[str] = None

    @property
    def scenarios(self) -> List[Scenario]:
        return [child for child in self.children if isinstance(child, Scenario)]

    @property
    def rules(self) -> List[Rule]:
        return [child for child in self.children if isinstance(child, Rule)]


@dataclass
class PlannedScenario:
    """
    A concrete (post-expansion) scenario together with everything it inherits:
    the owning feature and rule, both backgrounds and the effective tag set.
    """
    feature: Feature
    scenario: Scenario
    rule: Optional[Rule] = None
    tags: List[str] = field(default_factory=list)

    @property
    def feature_background(self) -> Optional[Background]:
        return self.feature.background

    @property
    def rule_background(self) -> Optional[Background]:
        return self.rule.background if self.rule else None

    @property
    def name(self) -> str:
        return self.scenario.name
