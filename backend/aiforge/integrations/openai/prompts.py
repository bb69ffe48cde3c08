"""Prompt templates for requirement analysis and code generation."""

ANALYSIS_SYSTEM_PROMPT = (
    "You are a professional software requirements analyst who breaks complex "
    "requirements down into executable development tasks."
)

ANALYSIS_PROMPT_TEMPLATE = """
As a senior software architect and project manager, analyze the following
requirement document and return the result in the JSON format below.

Requirement document:
{content}

Return JSON in exactly this shape:
{{
  "summary": "short summary of the requirement",
  "keyFeatures": ["key feature 1", "key feature 2"],
  "complexity": "LOW|MEDIUM|HIGH|VERY_HIGH",
  "estimatedHours": <total estimated hours>,
  "suggestions": "implementation advice and caveats",
  "modules": [
    {{
      "name": "module name",
      "description": "module description",
      "type": "FEATURE|COMPONENT|SERVICE|UTILITY|INTEGRATION",
      "priority": "LOW|MEDIUM|HIGH|URGENT",
      "estimatedHours": <module hours>,
      "tasks": [
        {{
          "title": "task title",
          "description": "task description",
          "type": "DEVELOPMENT|TESTING|DOCUMENTATION|DEPLOYMENT|REFACTORING",
          "priority": "LOW|MEDIUM|HIGH|URGENT",
          "estimatedHours": <task hours>,
          "techStack": ["tech 1", "tech 2"],
          "filePath": "suggested file path (optional)"
        }}
      ]
    }}
  ]
}}

Guidelines:
1. Split the requirement into sensible functional modules
2. Split each module into atomic development tasks
3. Each task should be an independent, testable unit of code
4. Estimate complexity and hours realistically
5. Consider a React frontend and a Node.js backend

Return only the JSON, with no other text.
"""

CODE_SYSTEM_PROMPT = (
    "You are a professional full-stack engineer who writes high quality, maintainable code."
)

CODE_PROMPT_TEMPLATE = """
As a senior full-stack engineer, generate high quality code for this task.

Task description: {description}
Tech stack: {tech_stack}
{file_path_line}
Requirements:
1. Complete, runnable code
2. Follow best practices and coding conventions
3. Include type definitions where the language has them
4. Add appropriate comments
5. Handle errors and edge cases
6. React components use function components and hooks
7. API routes include validation and error handling

Return only the code, with no other explanation.
"""
