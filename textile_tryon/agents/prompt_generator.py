"""Try-on prompt generation - category templates plus optional Gemini enhancement."""

import logging
from enum import Enum

from ..errors import RemoteServiceError
from ..models import Garment
from ..services.gemini_client import GeminiClient


logger = logging.getLogger(__name__)


class DrapingStyle(str, Enum):
    MALE_DRAPING = "male_draping"
    FEMALE_DRAPING = "female_draping"
    GENERIC = "generic"


MALE_DRAPING_CATEGORIES = frozenset({"vesti", "dhoti", "lungi"})
FEMALE_DRAPING_CATEGORIES = frozenset({"saree", "sari"})


MALE_DRAPING_TEMPLATE = (
    "The first image shows the {garment_name}, a traditional South Indian unstitched cloth. "
    "The second image shows the person who should wear it. "
    "Wrap the {garment_name} around the person's waist in the traditional vesti style: "
    "one smooth layer circling the waist, tucked securely at the front, falling straight to the ankles "
    "with the decorative border running along the hem and the front edge. "
    "Keep the exact same person from the second image - preserve their face, hair, skin tone, body shape, "
    "pose, background and lighting exactly. Leave the upper body clothing unchanged. "
    "Reproduce the fabric texture, weave, border pattern and colors of the {garment_name} faithfully, "
    "with natural folds and realistic shadows."
)

FEMALE_DRAPING_TEMPLATE = (
    "The first image shows the {garment_name}, a saree. "
    "The second image shows the woman who should wear it. "
    "Drape the {garment_name} on her in the traditional Nivi saree style: neat pleats tucked at the waist, "
    "the fabric wrapped once around the lower body, and the pallu carried across the chest and "
    "falling gracefully over the left shoulder, with a matching blouse. "
    "Keep the exact same woman from the second image - preserve her face, hair, skin tone, body shape, "
    "pose, background and lighting exactly. "
    "Reproduce the fabric texture, sheen, border, motifs, pattern and colors of the {garment_name} faithfully, "
    "including the pallu design, with natural drape and realistic shadows."
)

GENERIC_TEMPLATE = (
    "The first image shows the {garment_name}, a garment from the {category} category. "
    "The second image shows the person who should wear it. "
    "Dress the person in the {garment_name} so that it fits their body naturally. "
    "Keep the exact same person from the second image - preserve their face, hair, skin tone, body shape, "
    "pose, background and lighting exactly. Only the clothing should change. "
    "Reproduce the fabric texture, pattern and colors of the {garment_name} faithfully, "
    "with natural folds and realistic shadows."
)

TEMPLATES = {
    DrapingStyle.MALE_DRAPING: MALE_DRAPING_TEMPLATE,
    DrapingStyle.FEMALE_DRAPING: FEMALE_DRAPING_TEMPLATE,
    DrapingStyle.GENERIC: GENERIC_TEMPLATE,
}


ENHANCEMENT_INSTRUCTIONS = """You write prompts for a multimodal image model that performs virtual try-on.
The model receives two images: first the garment, then the person who should wear it.

Garment details:
- Name: {garment_name}
- Category: {category}
- Type: {garment_type}
- Color: {color}
- Pattern: {pattern_style}

User's request: {custom_prompt}
Style: {style}

Base prompt:
{base_prompt}

Rewrite the base prompt into a richer, more specific instruction. Keep every preservation
requirement (face, hair, body, pose, background, lighting), describe the fabric, drape,
pattern and color of this specific garment, and honour the user's request and style.
Refer to the images as "the first image" and "the second image".

Return ONLY the prompt text - no explanation, no markdown."""

MAX_CUSTOM_PROMPT_LENGTH = 500


def classify_category(category: str | None) -> DrapingStyle:
    """Map a garment category to its draping style, ignoring case."""
    normalized = (category or "").strip().lower()
    if normalized in MALE_DRAPING_CATEGORIES:
        return DrapingStyle.MALE_DRAPING
    if normalized in FEMALE_DRAPING_CATEGORIES:
        return DrapingStyle.FEMALE_DRAPING
    return DrapingStyle.GENERIC


def build_prompt(
    garment_name: str,
    category: str | None,
    custom_prompt: str | None = None,
    style: str | None = None,
) -> str:
    """Fill the template for ``category`` with the garment's display name.

    A custom prompt and a style are appended after the template, so the
    identity-preservation instructions always stay in place.
    """
    template = TEMPLATES[classify_category(category)]
    prompt = template.format(garment_name=garment_name, category=category or "")
    if custom_prompt and custom_prompt.strip():
        prompt += f" Additional instructions: {custom_prompt.strip()}"
    if style and style.strip():
        prompt += f" Style: {style.strip()}."
    return prompt


class TryOnPromptGenerator:
    """Generates try-on prompts.

    ``generate_simple`` is a pure template lookup. ``generate_enhanced`` asks a
    Gemini text model to rewrite that template for the specific garment and
    falls back to the template when the call fails.
    """

    def __init__(self, gemini: GeminiClient | None = None):
        self.gemini = gemini

    def generate_simple(
        self,
        garment: Garment,
        custom_prompt: str | None = None,
        style: str | None = None,
    ) -> str:
        return build_prompt(garment.garment_name, garment.category, custom_prompt, style)

    async def generate_enhanced(
        self,
        garment: Garment,
        custom_prompt: str | None = None,
        style: str | None = None,
    ) -> str:
        base_prompt = self.generate_simple(garment, custom_prompt, style)
        if self.gemini is None:
            return base_prompt

        request = ENHANCEMENT_INSTRUCTIONS.format(
            garment_name=garment.garment_name,
            category=garment.category,
            garment_type=garment.garment_type or "not specified",
            color=garment.color or "not specified",
            pattern_style=garment.pattern_style or "no specific",
            custom_prompt=(custom_prompt or "").strip() or "make it look natural",
            style=(style or "").strip() or "not specified",
            base_prompt=base_prompt,
        )

        try:
            enhanced = await self.gemini.generate_text(request)
        except RemoteServiceError as exc:
            logger.warning(
                "Prompt enhancement failed for garment %s, using template prompt: %s",
                garment.id, exc,
            )
            return base_prompt

        # The model must still be told which garment it is placing
        if garment.garment_name not in enhanced:
            enhanced = f"{enhanced}\n\nThe garment is the {garment.garment_name}."
        return enhanced
