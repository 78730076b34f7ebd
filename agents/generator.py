"""Content generators that turn an article into social post text.

Two strategies share one async interface, generate(article, profile,
platform, options) -> GeneratedContent:

TemplateGenerator:
    Deterministic tone-specific templates. The variant is chosen from the
    article's url_hash, so the same article always renders the same post.

AIGenerator:
    PydanticAI agent over an OpenAI chat model with structured output.
    Any failure (missing key, provider error, invalid output) is raised
    as GenerationUnavailable.

FallbackGenerator wraps a primary strategy and answers with the template
output whenever the primary fails; callers never see a generation error.
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Protocol

from openai import AsyncOpenAI
from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider

from config import Config
from errors import GenerationUnavailable
from models.article import Article
from models.content import GeneratedContent, GeneratedPost
from models.profile import BrandProfile, Platform, VoiceTone

logger = logging.getLogger(__name__)

TWITTER_MAX_CHARS = 280
DEFAULT_SOURCE_NAME = "Industry News"

# Hashtag caps per platform
MAX_HASHTAGS = {
    Platform.TWITTER: 3,
    Platform.LINKEDIN: 5,
    Platform.FACEBOOK: 5,
}

PLATFORM_LIMITS = {
    Platform.TWITTER: "280 characters",
    Platform.LINKEDIN: "1300 characters",
    Platform.FACEBOOK: "500 characters",
}

VARIATION_TONES = ("professional", "engaging", "conversational")

SYSTEM_PROMPT = (
    "You are an expert social media content creator. Create engaging, authentic "
    "posts that drive engagement while maintaining brand voice and platform best "
    "practices. Return the post body in `text` without hashtags, and the hashtags "
    "separately in `hashtags`."
)

_HASHTAG_PATTERN = re.compile(r"#\w+")
_NON_WORD = re.compile(r"\W+")


@dataclass
class GenerationOptions:
    """Per-call generation knobs.

    Attributes:
        include_hashtags: Produce hashtags at all
        include_link: Put the article URL in the text
        tone: Overrides the profile's voice tone in AI prompts
        custom_instructions: Extra instructions appended to AI prompts
        variant: Offset added to the template choice (used for variations)
    """

    include_hashtags: bool = True
    include_link: bool = True
    tone: str | None = None
    custom_instructions: str = ""
    variant: int = 0


class ContentGenerator(Protocol):
    """Capability shared by all generation strategies."""

    async def generate(
        self,
        article: Article,
        profile: BrandProfile,
        platform: Platform,
        options: GenerationOptions | None = None,
    ) -> GeneratedContent: ...


# === Shared helpers ===


def truncate(text: str, max_length: int) -> str:
    """Shorten text to max_length characters, ending with '...' if cut."""
    if len(text) <= max_length:
        return text
    return text[: max(0, max_length - 3)].rstrip() + "..."


def extract_key_points(article: Article, max_points: int = 3) -> list[str]:
    """First sentences of the summary (or content) longer than 20 chars."""
    text = article.summary or article.content or ""
    sentences = [s.strip() for s in text.split(". ")]
    return [s for s in sentences if len(s) > 20][:max_points]


def _hashtag_term(value: str) -> str:
    return _NON_WORD.sub("", value.lower().replace("#", ""))


def build_hashtags(article: Article, profile: BrandProfile, max_count: int) -> list[str]:
    """Hashtags from industry, niche, then article tags; unique, '#'-prefixed."""
    tags = []
    for value in [profile.industry, profile.niche, *article.tags]:
        term = _hashtag_term(value or "")
        if term and term not in tags:
            tags.append(term)
    return [f"#{t}" for t in tags[:max_count]]


def _normalize_hashtags(values: list[str], max_count: int) -> list[str]:
    tags = []
    for value in values:
        term = _hashtag_term(value)
        if term and f"#{term}" not in tags:
            tags.append(f"#{term}")
    return tags[:max_count]


def _fit_twitter(body: str, url: str) -> str:
    """Join body and url so the whole post fits in one tweet."""
    if not url:
        return truncate(body.strip(), TWITTER_MAX_CHARS)
    room = TWITTER_MAX_CHARS - len(url) - 2
    if room <= 0:
        return truncate(url, TWITTER_MAX_CHARS)
    return f"{truncate(body.strip(), room)}\n\n{url}"


# === Template strategy ===


class TemplateGenerator:
    """Deterministic tone-aware templates for each platform."""

    FACEBOOK_INTROS = {
        VoiceTone.PROFESSIONAL: [
            "Important update for those following {industry} trends:",
            "Sharing this relevant article:",
        ],
        VoiceTone.CASUAL: [
            "Hey everyone! Found this interesting piece:",
            "Thought you might find this useful:",
        ],
        VoiceTone.FORMAL: [
            "For your consideration:",
            "Industry update:",
        ],
        VoiceTone.HUMOROUS: [
            "Well, this is something! 😄",
            "You might want to see this:",
        ],
    }

    LINKEDIN_INTROS = [
        "Sharing an important development in {industry}:",
        "This caught my attention and I thought it might interest you:",
        "Latest insights from the {industry} sector:",
        "Worth discussing with the community:",
    ]

    LINKEDIN_CONCLUSIONS = [
        "What's your perspective on this?",
        "I'd love to hear your thoughts.",
        "How do you see this impacting {industry}?",
        "Share your insights below.",
    ]

    @staticmethod
    def _pick(options: list[str], article: Article, variant: int) -> str:
        seed = int(article.url_hash[:8], 16) if article.url_hash else 0
        return options[(seed + variant) % len(options)]

    def _twitter(self, article: Article, profile: BrandProfile, opts: GenerationOptions) -> str:
        industry = profile.industry or "the industry"
        summary = article.summary or article.title
        source = article.source_name or DEFAULT_SOURCE_NAME
        bodies = {
            VoiceTone.PROFESSIONAL: [
                truncate(article.title, 200),
                f"Industry insight: {truncate(summary, 180)}",
                f"New development in {industry}: {truncate(article.title, 160)}",
            ],
            VoiceTone.CASUAL: [
                f"Check this out! {truncate(article.title, 180)} 👀",
                f"Interesting: {truncate(summary, 180)}",
                f"Worth reading: {truncate(article.title, 180)}",
            ],
            VoiceTone.FORMAL: [
                f"{truncate(article.title, 200)}\n\nSource: {source}",
                f"Recent report: {truncate(article.title, 180)}",
            ],
            VoiceTone.HUMOROUS: [
                f"Plot twist in {industry}! 🎭\n\n{truncate(article.title, 160)}",
                f"Well, this is interesting... {truncate(article.title, 160)}",
            ],
        }
        body = self._pick(bodies[profile.voice_tone], article, opts.variant)
        return _fit_twitter(body, article.url if opts.include_link else "")

    def _linkedin(self, article: Article, profile: BrandProfile, opts: GenerationOptions) -> str:
        industry = profile.industry or "our industry"
        intro = self._pick(self.LINKEDIN_INTROS, article, opts.variant).format(industry=industry)
        conclusion = self._pick(self.LINKEDIN_CONCLUSIONS, article, opts.variant).format(industry=industry)

        lines = [intro, ""]
        key_points = extract_key_points(article)
        if key_points:
            lines.append("Key takeaways:")
            lines.extend(f"{i}. {point}" for i, point in enumerate(key_points, start=1))
            lines.append("")
        else:
            lines.extend([article.title, ""])
        lines.append(conclusion)
        if opts.include_link:
            lines.extend(["", f"Read more: {article.url}"])
        return "\n".join(lines).strip()

    def _facebook(self, article: Article, profile: BrandProfile, opts: GenerationOptions) -> str:
        industry = profile.industry or "industry"
        intro = self._pick(self.FACEBOOK_INTROS[profile.voice_tone], article, opts.variant)
        parts = [intro.format(industry=industry), article.summary or article.title]
        if profile.voice_tone in (VoiceTone.CASUAL, VoiceTone.HUMOROUS):
            parts.append("What are your thoughts on this?")
        else:
            parts.append("Your insights on this topic would be valuable.")
        if opts.include_link:
            parts.append(article.url)
        return "\n\n".join(parts).strip()

    async def generate(
        self,
        article: Article,
        profile: BrandProfile,
        platform: Platform,
        options: GenerationOptions | None = None,
    ) -> GeneratedContent:
        opts = options or GenerationOptions()
        platform = Platform(platform)
        if platform is Platform.TWITTER:
            text = self._twitter(article, profile, opts)
        elif platform is Platform.LINKEDIN:
            text = self._linkedin(article, profile, opts)
        else:
            text = self._facebook(article, profile, opts)

        hashtags = build_hashtags(article, profile, MAX_HASHTAGS[platform]) if opts.include_hashtags else []
        return GeneratedContent(text=text, hashtags=hashtags, platform=platform)


# === AI strategy ===


def _create_model(model_name: str, api_key: str) -> OpenAIChatModel:
    """Create an OpenAI chat model bound to an explicit API key."""
    client = AsyncOpenAI(api_key=api_key)
    return OpenAIChatModel(model_name, provider=OpenAIProvider(openai_client=client))


def _create_agent(model: Model | str) -> Agent[None, GeneratedPost]:
    """Create the PydanticAI agent used for post generation."""
    return Agent(
        model,
        output_type=GeneratedPost,
        system_prompt=SYSTEM_PROMPT,
        retries=2,
    )


def build_prompt(
    article: Article,
    profile: BrandProfile,
    platform: Platform,
    options: GenerationOptions,
) -> str:
    """User message describing the article, the brand and platform rules."""
    brand_tone = profile.voice_tone.value.lower()
    lines = [
        f"Create a {platform.value} post about this article:",
        "",
        "ARTICLE:",
        f"Title: {article.title}",
        f"Summary: {article.summary or 'No summary available'}",
        f"URL: {article.url}",
        "",
        "BRAND CONTEXT:",
        f"Industry: {profile.industry or 'general business'}",
        f"Voice/Tone: {brand_tone}",
        f"Keywords: {', '.join(profile.keywords)}",
        "",
        "REQUIREMENTS:",
        f"- Platform: {platform.value} (max {PLATFORM_LIMITS[platform]})",
        f"- Tone: {options.tone or brand_tone}",
        "- Make it engaging and authentic",
        "- Focus on value for the audience",
        "- Don't sound like AI-generated content",
    ]
    if options.include_hashtags:
        lines.append(f"- Include 2-{MAX_HASHTAGS[platform]} relevant hashtags")
    if options.include_link:
        lines.append(f"- Include the article URL: {article.url}")
    if platform is Platform.TWITTER:
        lines.extend(["- Keep under 280 characters total", "- Make it punchy and shareable"])
    elif platform is Platform.LINKEDIN:
        lines.extend([
            "- Professional tone appropriate for LinkedIn",
            "- Can be longer and more detailed",
            "- Encourage discussion and engagement",
        ])
    else:
        lines.extend(["- Conversational and accessible", "- Encourage comments and sharing"])
    if options.custom_instructions:
        lines.extend(["", "CUSTOM INSTRUCTIONS:", options.custom_instructions])
    return "\n".join(lines)


class AIGenerator:
    """Generates post text with an LLM.

    Args:
        model: OpenAI model name, or a PydanticAI Model instance
        api_key: OpenAI API key (required when model is a name)

    Example:
        >>> generator = AIGenerator("gpt-4o-mini", api_key=config.openai_api_key)
        >>> content = await generator.generate(article, profile, Platform.LINKEDIN)
    """

    def __init__(self, model: Model | str = "gpt-4o-mini", api_key: str = ""):
        if isinstance(model, str):
            if not api_key:
                raise GenerationUnavailable("OPENAI_API_KEY is not set")
            model = _create_model(model, api_key)
        self._agent = _create_agent(model)

    async def generate(
        self,
        article: Article,
        profile: BrandProfile,
        platform: Platform,
        options: GenerationOptions | None = None,
    ) -> GeneratedContent:
        opts = options or GenerationOptions()
        platform = Platform(platform)
        prompt = build_prompt(article, profile, platform, opts)

        try:
            result = await self._agent.run(prompt)
        except Exception as e:
            raise GenerationUnavailable(f"{type(e).__name__}: {e}") from e

        output = result.output
        usage = result.usage()
        logger.debug(
            "Post generated | article=%s platform=%s requests=%d",
            article.id, platform.value, usage.requests,
        )

        # Hashtags inlined in the text are moved to the hashtag list
        inline = _HASHTAG_PATTERN.findall(output.text)
        text = _HASHTAG_PATTERN.sub("", output.text).strip() if inline else output.text.strip()
        if not text:
            raise GenerationUnavailable("model returned empty post text")
        if platform is Platform.TWITTER:
            text = truncate(text, TWITTER_MAX_CHARS)

        hashtags = []
        if opts.include_hashtags:
            hashtags = _normalize_hashtags(output.hashtags + inline, MAX_HASHTAGS[platform])
            if not hashtags:
                hashtags = build_hashtags(article, profile, MAX_HASHTAGS[platform])
        return GeneratedContent(text=text, hashtags=hashtags, platform=platform)


# === Composition ===


class FallbackGenerator:
    """Uses the primary strategy, falling back to another on any failure."""

    def __init__(self, primary: ContentGenerator, fallback: ContentGenerator | None = None):
        self.primary = primary
        self.fallback = fallback or TemplateGenerator()

    async def generate(
        self,
        article: Article,
        profile: BrandProfile,
        platform: Platform,
        options: GenerationOptions | None = None,
    ) -> GeneratedContent:
        try:
            return await self.primary.generate(article, profile, platform, options)
        except Exception as e:
            logger.warning(
                "Generation fell back to templates | article=%s type=%s error=%s",
                article.id, type(e).__name__, e,
            )
            return await self.fallback.generate(article, profile, platform, options)


def create_generator(config: Config) -> ContentGenerator:
    """Select the generation strategy from configuration.

    'template' always uses templates. 'ai' and 'auto' use the AI model
    (with template fallback) when OPENAI_API_KEY is set.
    """
    if not config.ai_enabled:
        if config.content_generator == "ai":
            logger.warning("CONTENT_GENERATOR=ai but OPENAI_API_KEY is not set, using templates")
        return TemplateGenerator()
    logger.info("Using AI content generator | model=%s", config.content_model)
    return FallbackGenerator(AIGenerator(config.content_model, api_key=config.openai_api_key))


async def generate_variations(
    generator: ContentGenerator,
    article: Article,
    profile: BrandProfile,
    platform: Platform,
    count: int = 3,
    options: GenerationOptions | None = None,
) -> list[GeneratedContent]:
    """Produce count alternative posts for the same article."""
    base = options or GenerationOptions()
    variations = []
    for i in range(count):
        tone = VARIATION_TONES[i % len(VARIATION_TONES)]
        extra = f"Use a {tone} tone. Make this variation {i + 1} unique from others."
        opts = replace(
            base,
            variant=base.variant + i,
            custom_instructions=f"{base.custom_instructions} {extra}".strip(),
        )
        variations.append(await generator.generate(article, profile, platform, opts))
    return variations
