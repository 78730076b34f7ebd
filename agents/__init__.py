"""Content generation strategies for scheduled posts.

TemplateGenerator:
    Deterministic, tone-aware templates per platform. Always available.

AIGenerator:
    PydanticAI agent over an OpenAI chat model with structured output.

FallbackGenerator:
    Wraps the AI generator so provider failures degrade to templates.

Example:
    >>> from agents import create_generator
    >>> generator = create_generator(config)
    >>> content = await generator.generate(article, profile, Platform.TWITTER)
"""

from agents.generator import (
    AIGenerator,
    ContentGenerator,
    FallbackGenerator,
    GenerationOptions,
    TemplateGenerator,
    create_generator,
    generate_variations,
)

__all__ = [
    "AIGenerator",
    "ContentGenerator",
    "FallbackGenerator",
    "GenerationOptions",
    "TemplateGenerator",
    "create_generator",
    "generate_variations",
]
