"""Prompt templates for post text and hero images."""

from __future__ import annotations

from blog_studio.content.models import GenerationRequest, Length, Tone

WORD_COUNTS: dict[Length, str] = {
    Length.SHORT: "300-500",
    Length.MEDIUM: "800-1200",
    Length.LONG: "1500-2000",
}

TONE_INSTRUCTIONS: dict[Tone, str] = {
    Tone.PROFESSIONAL: (
        "Use a professional, authoritative tone with industry insights "
        "and data-driven content."
    ),
    Tone.CASUAL: (
        "Write in a conversational, friendly tone that feels like talking "
        "to a knowledgeable friend."
    ),
    Tone.HUMOROUS: (
        "Include humor, wit, and entertaining examples while maintaining "
        "informative content."
    ),
}


def build_content_prompt(request: GenerationRequest) -> str:
    """Render the single user prompt sent to the LLM."""
    return f"""Write a comprehensive blog post about "{request.theme}".

Requirements:
- Length: {WORD_COUNTS[request.length]} words
- Tone: {TONE_INSTRUCTIONS[request.tone]}
- Include engaging headlines and subheadings
- Add practical examples and actionable insights
- Format with proper markdown structure

IMPORTANT: Respond with ONLY a valid JSON object in this exact format:
{{
  "title": "Your compelling title here (max 60 characters)",
  "excerpt": "Your brief excerpt here (max 160 characters)",
  "content": "Your full blog post content in markdown format"
}}

Do not include any other text, explanations, or formatting outside of this JSON structure."""


# ── Image prompts ───────────────────────────────────────────────────────

BASE_IMAGE_STYLE = (
    "Atmospheric narrative illustration with clean linework and textured color "
    "fields, evoking a sense of place and story. Soft, warm lighting creates gentle "
    "highlights and soft-edged shadows. The style blends detailed environmental "
    "elements with expressive character work."
)

# Each scene: (keywords, subject, environment, palette, mood).  The first
# scene whose keywords appear in the theme wins.
SCENES: list[tuple[tuple[str, ...], str, str, str, str]] = [
    (
        ("travel", "city", "cities", "destination"),
        "A thoughtful traveler with a backpack sitting at a small café table, "
        "studying a map or guidebook",
        "bustling street scene with local architecture, street signs in foreign "
        "languages, vintage travel posters on walls, steam rising from coffee cups, "
        "glimpses of other travelers and locals",
        "muted earth tones and warm ochres with pops of vibrant blues in signage, "
        "golden sunset lighting, and rich burgundy accents",
        "wanderlust and discovery amidst vibrant cultural surroundings",
    ),
    (
        ("food", "cooking", "recipe", "cuisine"),
        "A person carefully preparing or enjoying a meal at a rustic wooden table",
        "cozy kitchen or intimate restaurant setting with hanging herbs, vintage "
        "cookware, steam rising from dishes, warm pendant lighting, shelves lined "
        "with spices and ingredients",
        "warm terracotta and cream tones with pops of fresh green herbs, golden "
        "lighting, and rich amber accents",
        "culinary passion and comfort amidst aromatic surroundings",
    ),
    (
        ("tech", "digital", "ai", "future"),
        "A focused individual working at a sleek desk with modern devices, "
        "surrounded by subtle holographic displays",
        "contemporary workspace with clean lines, soft ambient lighting from hidden "
        "sources, floating interface elements, plants adding organic warmth, city "
        "lights visible through large windows",
        "cool blues and teals with warm accent lighting, metallic silver details, "
        "and pops of electric cyan",
        "innovation and contemplation in a harmonious tech environment",
    ),
    (
        ("nature", "mountain", "hiking", "outdoor"),
        "An adventurer resting at a scenic overlook, consulting a trail map or "
        "enjoying a simple meal",
        "mountain vista or forest clearing with detailed flora, weathered trail "
        "markers, camping gear, golden hour lighting filtering through trees, "
        "distant peaks or valleys",
        "forest greens and earth browns with warm golden sunlight, deep blue sky "
        "accents, and rich sunset oranges",
        "peaceful adventure and connection with nature",
    ),
    (
        ("business", "work", "career", "professional"),
        "A professional in a thoughtful moment, reviewing documents or planning at "
        "a well-organized workspace",
        "modern office or co-working space with natural light, plants, organized "
        "shelving, quality materials, subtle technology integration, inspiring artwork",
        "sophisticated grays and whites with warm wood accents, pops of professional "
        "blue, and soft natural lighting",
        "focused determination and professional growth",
    ),
    (
        ("health", "wellness", "fitness", "lifestyle"),
        "A person in a moment of wellness - stretching, meditating, or preparing "
        "healthy food",
        "serene space with natural elements, yoga mats or exercise equipment, fresh "
        "plants, natural lighting, water bottles, healthy ingredients",
        "calming sage greens and soft whites with natural wood tones, gentle blue "
        "accents, and warm natural lighting",
        "tranquil self-care and mindful living",
    ),
    (
        ("art", "creative", "design", "culture"),
        "An artist or creative person working intently at their craft, surrounded "
        "by tools and inspiration",
        "artistic studio or creative space with easels, brushes, sketches on walls, "
        "natural light from large windows, organized chaos of creative materials",
        "rich artistic colors with paint-splattered surfaces, warm studio lighting, "
        "vibrant accent colors, and textured backgrounds",
        "creative flow and artistic inspiration",
    ),
]

DEFAULT_SCENE = (
    "A contemplative person engaged with the subject matter, reading or working "
    "at a comfortable setting",
    "thoughtfully designed environment with books, plants, warm lighting, personal "
    "touches, and atmospheric details that suggest depth and story",
    "balanced warm and cool tones with soft lighting, natural textures, and "
    "harmonious color relationships",
    "quiet focus and intellectual engagement",
)


def build_image_prompt(theme: str) -> str:
    """Build an atmospheric illustration prompt for a post theme."""
    lower_theme = theme.lower()
    subject, environment, palette, mood = DEFAULT_SCENE
    for keywords, *scene in SCENES:
        # Substring match, so "ai" also matches "maintenance".
        if any(keyword in lower_theme for keyword in keywords):
            subject, environment, palette, mood = scene
            break

    return (
        f"{BASE_IMAGE_STYLE} {subject} in {environment}. The mood is {mood}. "
        f"{palette}. The composition uses a slightly elevated perspective with sharp "
        "focus on the main subject and their immediate environment, while background "
        "elements are subtly detailed for depth. Subtle paper texture or digital grain "
        "is visible throughout, creating an illustrative, story-book quality that "
        "invites the viewer into the narrative."
    )
