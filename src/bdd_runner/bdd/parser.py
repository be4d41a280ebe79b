import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from behave import model as behave_model
from behave.parser import ParserError, parse_feature

from ..core.exceptions import ConfigurationError
from .model import Background, DataTable, Examples, Feature, Rule, Scenario, Step

logger = logging.getLogger(__name__)

FEATURE_EXTENSION = ".feature"


class FeatureFileParser:
    """
    Parses .feature files with behave's Gherkin parser and converts the
    result into the engine's document model.
    """

    def parse(self, content: str, filename: Optional[str] = None) -> Optional[Feature]:
        """
        Parse feature text.

        Args:
            content: Gherkin source
            filename: Source file name, kept for error reporting

        Returns:
            The parsed feature, or None when the text holds no feature
        """
        try:
            parsed = parse_feature(content, filename=filename)
        except ParserError as e:
            raise ConfigurationError(f"Cannot parse feature file {filename or '<string>'}: {e}") from e

        if parsed is None:
            return None
        return self._convert_feature(parsed, filename)

    def parse_file(self, path: Union[str, Path]) -> Optional[Feature]:
        """Parse a single feature file"""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Feature file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            return self.parse(f.read(), filename=str(path))

    def search_feature_files(self, paths: Iterable[Union[str, Path]]) -> List[Path]:
        """Find .feature files in the given files and directories (recursively)"""
        found = []
        for entry in paths:
            entry = Path(entry)
            if not entry.exists():
                raise FileNotFoundError(f"Feature path not found: {entry}")
            if entry.is_dir():
                found.extend(sorted(entry.glob(f'**/*{FEATURE_EXTENSION}')))
            elif entry.suffix == FEATURE_EXTENSION:
                found.append(entry)
        return found

    def load(self, paths: Iterable[Union[str, Path]]) -> List[Feature]:
        """Parse every feature file found under the given paths"""
        features = []
        for feature_file in self.search_feature_files(paths):
            logger.debug(f"Parsing feature file: {feature_file}")
            feature = self.parse_file(feature_file)
            if feature is not None:
                features.append(feature)
        logger.info(f"Loaded {len(features)} feature(s)")
        return features

    def _convert_feature(self, parsed, filename: Optional[str]) -> Feature:
        children = [self._convert_scenario(s) for s in parsed.scenarios]
        children.extend(self._convert_rule(r) for r in getattr(parsed, "rules", None) or [])

        return Feature(
            name=parsed.name,
            children=children,
            background=self._convert_background(parsed.background),
            tags=_tags(parsed.tags),
            description="\n".join(parsed.description or []),
            file=filename or getattr(parsed, "filename", None),
        )

    def _convert_rule(self, parsed) -> Rule:
        return Rule(
            name=parsed.name,
            scenarios=[self._convert_scenario(s) for s in parsed.scenarios],
            background=self._convert_background(parsed.background),
            tags=_tags(parsed.tags),
            line=parsed.line,
        )

    def _convert_background(self, parsed) -> Optional[Background]:
        if parsed is None:
            return None
        return Background(
            steps=[self._convert_step(s) for s in parsed.steps],
            name=parsed.name or "",
            line=parsed.line,
        )

    def _convert_scenario(self, parsed) -> Scenario:
        examples = []
        if isinstance(parsed, behave_model.ScenarioOutline):
            examples = [self._convert_examples(e) for e in parsed.examples]

        return Scenario(
            name=parsed.name,
            steps=[self._convert_step(s) for s in parsed.steps],
            tags=_tags(parsed.tags),
            examples=examples,
            keyword=parsed.keyword,
            description="\n".join(parsed.description or []),
            line=parsed.line,
        )

    def _convert_examples(self, parsed) -> Examples:
        table = parsed.table
        return Examples(
            header=list(table.headings) if table else [],
            rows=[list(row.cells) for row in table.rows] if table else [],
            name=parsed.name or "",
            tags=_tags(parsed.tags),
            line=parsed.line,
        )

    def _convert_step(self, parsed) -> Step:
        table = None
        if parsed.table is not None:
            table = DataTable([list(parsed.table.headings)] + [list(row.cells) for row in parsed.table.rows])

        return Step(
            keyword=parsed.keyword,
            text=parsed.name,
            table=table,
            doc_string=parsed.text,
            line=parsed.line,
        )


def _tags(tags) -> List[str]:
    """behave strips the leading @; the engine compares tags with it"""
    return [str(tag) if str(tag).startswith("@") else f"@{tag}" for tag in (tags or [])]
