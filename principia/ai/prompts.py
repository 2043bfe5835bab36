"""Prompt builders for topic generation, validation and quizzes."""

from __future__ import annotations

import json

from principia.ai.content_service import QuizPrinciple, TopicContent

_GENERATE_TEMPLATE = """You are an expert educator who teaches using first principles thinking.

Break down the topic "{{TITLE}}" into its fundamental first principles.

For each principle:
1. Start with the most basic, foundational concept
2. Build up to more complex ideas
3. Use real-world analogies to make abstract concepts tangible
4. Include key takeaways

Also generate a mind map that visualizes the topic structure and relationships between concepts.

Return a JSON object with description, category, difficulty (beginner | intermediate | advanced),
estimatedMinutes (typically 20-60), principles (title, explanation, analogy, visualType, visualData,
keyTakeaways) and mindMap (nodes with id, label, type, summary; edges with source, target, label).

Include 4-6 principles, ordered from most fundamental to more advanced. Each principle should build on the previous ones.
The mind map has the topic as the central node (type "topic"), one node per principle (type "principle",
ids p1, p2, ...) and 1-2 concept nodes per principle (type "concept")."""

_VALIDATE_TEMPLATE = """You are a meticulous fact-checker reviewing educational content about "{{TITLE}}".

Check every principle for factual accuracy, internal consistency and whether the analogy is misleading.

Return a JSON object with:
- overallConfidence: integer 0-100 describing how confident you are the content is accurate
- issues: list of short strings describing concrete problems (empty when none)
- principleScores: list of objects with title and confidence (0-100)

CONTENT:
{{CONTENT}}"""

_QUIZ_TEMPLATE = """You are an expert educator writing a short quiz on "{{TITLE}}".

Write {{COUNT}} multiple-choice questions that test understanding of the principles below, not rote recall.
Each question has exactly 4 options with one correct answer. Spread the questions across the principles.

Return a JSON object with questions: a list of objects with
- principleIndex: 0-based index of the principle the question tests
- questionText: the question
- options: 4 answer strings
- correctAnswer: 0-based index of the correct option
- explanation: why the correct answer is right

PRINCIPLES:
{{PRINCIPLES}}"""

QUIZ_QUESTION_COUNT = 5

TOPIC_RESPONSE_SCHEMA = {
  "type": "OBJECT",
  "properties": {
    "description": {"type": "STRING"},
    "category": {"type": "STRING"},
    "difficulty": {"type": "STRING"},
    "estimatedMinutes": {"type": "INTEGER"},
    "principles": {
      "type": "ARRAY",
      "items": {
        "type": "OBJECT",
        "properties": {
          "title": {"type": "STRING"},
          "explanation": {"type": "STRING"},
          "analogy": {"type": "STRING"},
          "visualType": {"type": "STRING"},
          "keyTakeaways": {"type": "ARRAY", "items": {"type": "STRING"}},
        },
        "required": ["title", "explanation", "analogy", "keyTakeaways"],
      },
    },
    "mindMap": {
      "type": "OBJECT",
      "properties": {
        "nodes": {
          "type": "ARRAY",
          "items": {"type": "OBJECT", "properties": {"id": {"type": "STRING"}, "label": {"type": "STRING"}, "type": {"type": "STRING"}, "summary": {"type": "STRING"}}, "required": ["id", "label", "type"]},
        },
        "edges": {
          "type": "ARRAY",
          "items": {"type": "OBJECT", "properties": {"source": {"type": "STRING"}, "target": {"type": "STRING"}, "label": {"type": "STRING"}}, "required": ["source", "target"]},
        },
      },
      "required": ["nodes", "edges"],
    },
  },
  "required": ["description", "category", "difficulty", "estimatedMinutes", "principles", "mindMap"],
}

VALIDATION_RESPONSE_SCHEMA = {
  "type": "OBJECT",
  "properties": {
    "overallConfidence": {"type": "INTEGER"},
    "issues": {"type": "ARRAY", "items": {"type": "STRING"}},
    "principleScores": {"type": "ARRAY", "items": {"type": "OBJECT", "properties": {"title": {"type": "STRING"}, "confidence": {"type": "INTEGER"}}}},
  },
  "required": ["overallConfidence"],
}

QUIZ_RESPONSE_SCHEMA = {
  "type": "OBJECT",
  "properties": {
    "questions": {
      "type": "ARRAY",
      "items": {
        "type": "OBJECT",
        "properties": {
          "principleIndex": {"type": "INTEGER"},
          "questionText": {"type": "STRING"},
          "options": {"type": "ARRAY", "items": {"type": "STRING"}},
          "correctAnswer": {"type": "INTEGER"},
          "explanation": {"type": "STRING"},
        },
        "required": ["principleIndex", "questionText", "options", "correctAnswer", "explanation"],
      },
    },
  },
  "required": ["questions"],
}


def _replace_placeholders(template: str, values: dict[str, str]) -> str:
  """Substitute {{PLACEHOLDER}} markers."""
  rendered = template
  for key, value in values.items():
    rendered = rendered.replace(f"{{{{{key}}}}}", value)

  return rendered


def render_generate_prompt(title: str) -> str:
  return _replace_placeholders(_GENERATE_TEMPLATE, {"TITLE": title})


def render_validate_prompt(title: str, content: TopicContent) -> str:
  # Sorted keys keep the prompt deterministic across runs.
  serialized = json.dumps(content.model_dump(mode="json", by_alias=True), ensure_ascii=True, sort_keys=True)
  return _replace_placeholders(_VALIDATE_TEMPLATE, {"TITLE": title, "CONTENT": serialized})


def render_quiz_prompt(title: str, principles: list[QuizPrinciple], *, count: int = QUIZ_QUESTION_COUNT) -> str:
  listing = "\n".join(f"{index}. {item.title}: {item.explanation}" for index, item in enumerate(principles))
  return _replace_placeholders(_QUIZ_TEMPLATE, {"TITLE": title, "COUNT": str(count), "PRINCIPLES": listing})
