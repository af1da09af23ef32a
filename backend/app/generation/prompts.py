"""Prompt builders for roadmap, chapter content and quiz generation.

Each prompt embeds a JSON example of the expected shape. Values taken from
user input or earlier generations are JSON-encoded so quotes in a subject
or chapter title cannot break the example.
"""

import json

JSON_ONLY = "IMPORTANT: Return ONLY a valid JSON object with NO additional text."


def _q(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def roadmap_structure_prompt(subject: str, difficulty: str) -> str:
    return f"""Create a comprehensive learning roadmap structure for {_q(subject)} at {_q(difficulty)} level.

{JSON_ONLY}

{{
  "subject": {_q(subject)},
  "difficulty": {_q(difficulty)},
  "description": {_q(f"Comprehensive {subject} learning path for {difficulty} level")},
  "totalDuration": "8-12 weeks",
  "estimatedHours": "40-60 hours",
  "prerequisites": ["Basic computer skills", "Internet access"],
  "learningOutcomes": [
    {_q(f"Master {subject} fundamentals")},
    "Build practical projects",
    "Understand best practices"
  ],
  "chapters": [
    {{
      "id": "chapter-1",
      "title": {_q(f"Introduction to {subject}")},
      "description": "Learn the fundamentals",
      "duration": "1 week",
      "estimatedHours": "4-6 hours",
      "difficulty": "beginner",
      "position": "left",
      "completed": false,
      "keyTopics": ["Basic concepts", "Setup"],
      "skills": ["Fundamentals"],
      "practicalProjects": ["Hello World"],
      "resources": 5
    }},
    {{
      "id": "chapter-2",
      "title": "Core Concepts",
      "description": "Deep dive into essentials",
      "duration": "1-2 weeks",
      "estimatedHours": "6-8 hours",
      "difficulty": "beginner",
      "position": "right",
      "completed": false,
      "keyTopics": ["Data types", "Functions"],
      "skills": ["Basic syntax"],
      "practicalProjects": ["Calculator"],
      "resources": 7
    }}
  ]
}}"""


def chapter_content_prompt(
    chapter_title: str,
    subject: str,
    *,
    difficulty: str | None = None,
    description: str | None = None,
    estimated_time: str = "4-6 hours",
) -> str:
    level = f" at {_q(difficulty)} level" if difficulty else ""
    return f"""Create comprehensive course content for {_q(chapter_title)} in {_q(subject)}{level}.

{JSON_ONLY}

{{
  "title": {_q(chapter_title)},
  "description": {_q(description or f"Comprehensive guide to {chapter_title}")},
  "learningObjectives": [
    {_q(f"Understand {chapter_title} fundamentals")},
    "Apply concepts practically"
  ],
  "estimatedTime": {_q(estimated_time)},
  "content": {{
    "introduction": {_q(f"Introduction to {chapter_title}...")},
    "mainContent": {_q(f"Detailed explanation of {chapter_title} concepts...")},
    "keyPoints": ["Key concept 1", "Key concept 2"],
    "summary": {_q(f"Summary of {chapter_title}...")}
  }},
  "videoId": "dQw4w9WgXcQ",
  "codeExamples": [
    {{
      "title": "Basic Example",
      "code": "// Example code",
      "explanation": "This example demonstrates basic concepts."
    }}
  ],
  "practicalExercises": [
    {{
      "title": "Practice Exercise",
      "description": "Apply what you learned",
      "difficulty": "easy"
    }}
  ],
  "additionalResources": [
    {{
      "title": "Documentation",
      "url": "https://example.com",
      "type": "documentation",
      "description": "Official documentation"
    }}
  ],
  "nextSteps": ["Practice the exercises", "Review examples"]
}}"""


def quiz_prompt(chapter_title: str, subject: str, difficulty: str) -> str:
    return f"""Create a quiz for {_q(chapter_title)} in {_q(subject)} at {_q(difficulty)} level.

{JSON_ONLY}

{{
  "chapterId": "chapter-quiz",
  "title": {_q(f"Quiz: {chapter_title}")},
  "description": "Test your understanding",
  "timeLimit": 600,
  "passingScore": 70,
  "questions": [
    {{
      "id": "q1",
      "type": "multiple-choice",
      "question": {_q(f"What is {chapter_title}?")},
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": 1,
      "explanation": "Explanation here",
      "difficulty": "easy",
      "points": 10
    }}
  ],
  "totalQuestions": 5,
  "totalPoints": 50
}}"""
