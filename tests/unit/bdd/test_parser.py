import pytest
from bdd_runner.bdd.parser import FeatureFileParser
from bdd_runner.core.exceptions import ConfigurationError

FEATURE_TEXT = '''@shop
Feature: Shopping cart
  As a customer I want a cart

  Background:
    Given an empty cart

  @smoke
  Scenario: Add one item
    When I add the following items:
      | name  | qty |
      | apple | 2   |
    Then the cart note is:
      """
      two apples
      """

  Scenario Outline: Add <count> items
    When I add <count> items
    Then the cart has <count> items

    Examples: small
      | count |
      | 1     |
      | 2     |
'''


class TestFeatureFileParser:
    """Test Gherkin parsing into the document model"""

    @pytest.fixture
    def parser(self):
        return FeatureFileParser()

    @pytest.fixture
    def feature(self, parser):
        return parser.parse(FEATURE_TEXT, filename="cart.feature")

    def test_feature_header(self, feature):
        assert feature.name == "Shopping cart"
        assert feature.tags == ["@shop"]
        assert feature.file == "cart.feature"

    def test_background(self, feature):
        assert [s.text for s in feature.background.steps] == ["an empty cart"]

    def test_scenario_steps_tables_and_doc_strings(self, feature):
        scenario = feature.scenarios[0]

        assert scenario.name == "Add one item"
        assert scenario.tags == ["@smoke"]
        assert scenario.steps[0].text == "I add the following items:"
        assert scenario.steps[0].table.as_dicts() == [{"name": "apple", "qty": "2"}]
        assert scenario.steps[1].doc_string == "two apples"

    def test_outline_examples(self, feature):
        outline = feature.scenarios[1]

        assert outline.is_outline
        assert outline.steps[0].text == "I add <count> items"
        assert outline.examples[0].header == ["count"]
        assert outline.examples[0].rows == [["1"], ["2"]]
        assert outline.examples[0].name == "small"

    def test_empty_text_has_no_feature(self, parser):
        assert parser.parse("") is None

    def test_syntax_error_is_a_configuration_error(self, parser):
        with pytest.raises(ConfigurationError):
            parser.parse("Feature: Broken\n  Scenario: x\n    Given a\n    Nonsense line\n")

    def test_load_directory(self, parser, tmp_path):
        """Test .feature discovery is recursive and ignores other files"""
        (tmp_path / "nested").mkdir()
        (tmp_path / "a.feature").write_text(FEATURE_TEXT)
        (tmp_path / "nested" / "b.feature").write_text(FEATURE_TEXT.replace("Shopping cart", "Other cart"))
        (tmp_path / "notes.txt").write_text("not a feature")

        features = parser.load([tmp_path])

        assert sorted(f.name for f in features) == ["Other cart", "Shopping cart"]

    def test_missing_path(self, parser, tmp_path):
        with pytest.raises(FileNotFoundError):
            parser.load([tmp_path / "missing"])
