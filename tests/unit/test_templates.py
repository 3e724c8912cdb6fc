"""Unit tests for tutor/prompts/templates.py — PromptTemplate and the assessment templates."""
import pytest

from tutor.prompts.templates import (
    ASSESSMENT_TEMPLATE,
    CLASSIFICATION_TEMPLATE,
    TOPIC_TEMPLATE,
    PromptTemplate,
)
from tutor.exceptions import PromptTemplateError


# ---------------------------------------------------------------------------
# PromptTemplate: construction and variable extraction
# ---------------------------------------------------------------------------

class TestPromptTemplateConstruction:
    """Tests for PromptTemplate instantiation and _extract_variables."""

    def test_basic_creation(self):
        """Template stores template string, name, and defaults."""
        pt = PromptTemplate("Hello {name}", name="greet", defaults={"name": "World"})
        assert pt.template == "Hello {name}"
        assert pt.name == "greet"
        assert pt.defaults == {"name": "World"}

    def test_template_is_stripped(self):
        pt = PromptTemplate("  Hello {name}  ", name="stripped")
        assert pt.template == "Hello {name}"

    def test_default_name_is_unnamed(self):
        assert PromptTemplate("Hello").name == "unnamed"

    def test_variables_extracted(self):
        """Attribute and index access count as the base variable; escaped braces do not."""
        pt = PromptTemplate("{a} {b.c} {d[0]} {{literal}}")
        assert pt.required_vars == {"a", "b", "d"}


# ---------------------------------------------------------------------------
# PromptTemplate: rendering
# ---------------------------------------------------------------------------

class TestPromptTemplateRender:
    """Tests for render() and partial()."""

    def test_render(self):
        assert PromptTemplate("Hi {who}").render(who="Ada") == "Hi Ada"

    def test_defaults_can_be_overridden(self):
        pt = PromptTemplate("Hi {who}", defaults={"who": "Nova"})
        assert pt.render() == "Hi Nova"
        assert pt.render(who="Ada") == "Hi Ada"

    def test_missing_variables_sorted(self):
        pt = PromptTemplate("{b} {a}", name="pair")

        with pytest.raises(PromptTemplateError) as exc_info:
            pt.render()

        assert exc_info.value.template_name == "pair"
        assert exc_info.value.missing_vars == ["a", "b"]

    def test_partial(self):
        pt = PromptTemplate("{greeting}, {who}", name="greet").partial(greeting="Hello")

        assert pt.name == "greet_partial"
        assert pt.render(who="Ada") == "Hello, Ada"

    def test_repr(self):
        assert "name='greet'" in repr(PromptTemplate("{x}", name="greet"))


# ---------------------------------------------------------------------------
# Assessment templates
# ---------------------------------------------------------------------------

class TestAssessmentTemplates:
    """The practice templates render with their documented variables."""

    def test_topic_template(self):
        prompt = TOPIC_TEMPLATE.render(question="What is 2+2?", course_slug="math", existing_logs="")

        assert 'Question: "What is 2+2?"' in prompt
        assert 'Course slug: "math"' in prompt
        assert '{"topic":"string"}' in prompt

    def test_classification_template(self):
        prompt = CLASSIFICATION_TEMPLATE.render(question="Q", answer="I don't know")

        assert 'User message: "I don\'t know"' in prompt
        assert '"isAnswerAttempt"' in prompt

    def test_assessment_template_requires_logs(self):
        with pytest.raises(PromptTemplateError) as exc_info:
            ASSESSMENT_TEMPLATE.render(question="Q", answer="A")
        assert exc_info.value.missing_vars == ["existing_logs"]
