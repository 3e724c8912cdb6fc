"""
Prompt Template System

Reusable prompt templates with variable interpolation and validation, and the
templates used to assess practice answers.
"""

from typing import Any, Optional
from string import Formatter

from tutor.exceptions import PromptTemplateError


class PromptTemplate:
    """Reusable template for generating prompts with {variable} placeholders."""

    def __init__(
        self,
        template: str,
        name: Optional[str] = None,
        defaults: Optional[dict[str, Any]] = None,
    ):
        self.template = template.strip()
        self.name = name or "unnamed"
        self.defaults = defaults or {}
        self.required_vars = self._extract_variables()

    def _extract_variables(self) -> set[str]:
        formatter = Formatter()
        variables = set()
        for _, field_name, _, _ in formatter.parse(self.template):
            if field_name is not None:
                base_name = field_name.split(".")[0].split("[")[0]
                if base_name:
                    variables.add(base_name)
        return variables

    def render(self, **kwargs: Any) -> str:
        values = {**self.defaults, **kwargs}
        missing = self.required_vars - set(values.keys())
        if missing:
            raise PromptTemplateError(template_name=self.name, missing_vars=sorted(missing))
        try:
            return self.template.format(**values)
        except KeyError as e:
            raise PromptTemplateError(template_name=self.name, missing_vars=[str(e)]) from e

    def partial(self, **kwargs: Any) -> "PromptTemplate":
        new_defaults = {**self.defaults, **kwargs}
        return PromptTemplate(template=self.template, name=f"{self.name}_partial", defaults=new_defaults)

    def __repr__(self) -> str:
        return f"PromptTemplate(name='{self.name}', vars={self.required_vars})"


# Topic labelling (multiple-choice fast path)

TOPIC_SYSTEM_PROMPT = (
    "You extract a concise topic label for a practice question. "
    "Return ONLY valid JSON with no additional text."
)

TOPIC_TEMPLATE = PromptTemplate(
    """Given the practice question, return ONLY valid JSON: {{"topic":"string"}}.

Question: "{question}"
Course slug: "{course_slug}"
{existing_logs}

CRITICAL: If similar questions on the same topic already exist in existing logs, use the EXACT SAME topic name.""",
    name="practice_topic",
)


# Answer-attempt classification

CLASSIFICATION_SYSTEM_PROMPT = (
    "You are a classifier that determines if a user message is an answer attempt. "
    "Return ONLY valid JSON with no additional text."
)

CLASSIFICATION_TEMPLATE = PromptTemplate(
    """Determine if the user's message is an actual answer attempt to the practice question, or if it's something else (like asking a new question, requesting help, making a comment, etc.).

Question: "{question}"
User message: "{answer}"

Return ONLY valid JSON:
{{
  "isAnswerAttempt": boolean - true if the user is attempting to answer the question, false otherwise
  "reason": "string - brief explanation (e.g., 'User is answering the question', 'User asked a new question')"
}}

CRITICAL RULES:
- isAnswerAttempt = true ONLY if the user is clearly trying to answer the practice question
- isAnswerAttempt = false if:
  * User asks a new question or requests help/clarification
  * User makes a comment unrelated to answering (e.g., "This is hard")
  * User refuses to answer (e.g., "I don't know", "Skip this")
  * Message is irrelevant, off-topic, or too short to carry an answer
  * Message is just punctuation, emojis, or filler words""",
    name="answer_classification",
)


# Grading

ASSESSMENT_SYSTEM_PROMPT = """You are an educational assessment AI. Analyze the student's answer to a practice question and return ONLY valid JSON with no additional text.

GRADING PHILOSOPHY:
- Focus ONLY on whether the student demonstrates understanding of the concept
- DO NOT grade grammar, structure, spelling or writing style
- Match the depth of evaluation to the complexity of the question; simple questions only require basic understanding
- Check if the student is missing important things about the concept, not whether they explained it well

ASSESSMENT GUIDANCE:
- Say what important concepts or knowledge the answer is missing to reach 10/10
- Be constructive and specific; if the answer is already perfect, acknowledge that briefly

SCORING RUBRIC:
- 0 = no answer, irrelevant text, refusal, or explicit uncertainty
- 1-2 = attempts something but is entirely incorrect
- 3-4 = minimal understanding, misses most key points
- 5-6 = partial understanding with notable gaps
- 7 = good understanding with minor gaps or inaccuracies
- 8 = understands it pretty well
- 9 = nearly perfect with only trivial omissions
- 10 = completely correct and demonstrates clear mastery

Return this exact structure:
{
  "topic": "string - specific topic/concept being practiced",
  "question": "string - the exact question asked",
  "answer": "string - the exact answer provided",
  "assessment": "string - 2-3 sentence evaluation focusing on what to improve to reach 10/10",
  "grade": number - integer from 0 to 10
}

CRITICAL: If similar questions on the same topic already exist in the existing logs, use the EXACT SAME topic name to group them together."""

ASSESSMENT_TEMPLATE = PromptTemplate(
    """Question: "{question}"
Answer: "{answer}"
{existing_logs}

Analyze this answer and return the JSON.""",
    name="answer_assessment",
)
