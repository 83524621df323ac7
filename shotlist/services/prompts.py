from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from shotlist.types import (
    CharacterDescription,
    GeneratedShot,
    ProductDescription,
    ScriptAnalysisResult,
    ShotDescription,
)

DEFAULT_STYLE = "Cinematic (Default)"
DEFAULT_FRAMING = "Default"

STYLE_OPTIONS: List[str] = [
    "Cinematic (Default)",
    "Anime (Ghibli Inspired)",
    "Anime (Shonen Action)",
    "Pixar 3D Animation",
    "Claymation",
    "Film Noir (Black & White)",
    "Cyberpunk (Neon & Dystopian)",
    "Wes Anderson Style (Symmetrical & Quirky)",
    "Vintage 80s Film",
    "Documentary (Handheld)",
]

FRAMING_INSTRUCTIONS: Dict[str, str] = {
    "Default": "Use standard cinematic framing.",
    "A bit wider": (
        "Crucial instruction: Frame all shots slightly wider than standard. A medium shot must become a "
        "medium-wide shot. A close-up should be looser, showing more of the shoulders."
    ),
    "Wide": (
        "Crucial instruction: Prioritize wide shots. Avoid close-ups and medium shots entirely. All shots must "
        "establish the environment. Convert any close/medium shot ideas into wide shots."
    ),
    "Extra wide": (
        "Crucial instruction: All shots MUST be extra wide or ultra-wide angle. This is a strict mandate. Do not "
        "generate any medium or close-up shots, no matter what the script implies. Emphasize the vastness of the "
        "environment."
    ),
}

FRAMING_OPTIONS: List[str] = list(FRAMING_INSTRUCTIONS)

IMAGE_QUALITY_DIRECTIVES = (
    "Cinematic film still, professional color grading, dramatic lighting, 8k, ultra-realistic, film grain."
)


def framing_instruction(framing: str) -> str:
    """Map a framing setting to the rule injected into every prompt; unknown values get the default."""
    return FRAMING_INSTRUCTIONS.get(framing, FRAMING_INSTRUCTIONS[DEFAULT_FRAMING])


def framing_rule(framing: str) -> str:
    # Shared first mandatory rule for the analysis and extension prompts.
    return (
        f"**Camera Framing:** You MUST strictly follow this framing rule: **{framing_instruction(framing)}**. "
        "If the rule is to use wide or extra-wide shots, you are forbidden from generating shot types like "
        "'Close-up' or 'Medium Shot'. You must reinterpret the action to fit the mandated framing."
    )


def style_instruction(style: str) -> str:
    return (
        f"The entire shot list and all descriptions must strictly adhere to a **'{style}'** visual style. "
        "This style should influence the camera work, lighting, mood, and composition of every shot."
    )


def image_instruction(has_reference_image: bool) -> str:
    if not has_reference_image:
        return "No reference image provided."
    return (
        "Crucially, first analyze the provided reference image. Derive its visual style, mood, color palette, "
        "lighting, and overall aesthetic. This image is the primary visual guide. All generated shot "
        "descriptions must align with this aesthetic."
    )


def format_entities(
    entities: Sequence[CharacterDescription] | Sequence[ProductDescription],
    tag: Optional[str] = None,
) -> List[str]:
    """Render names/descriptions either as ``[TAG: name - description]`` or ``name: description``."""
    if tag:
        return [f"[{tag}: {e.name} - {e.description}]" for e in entities]
    return [f"{e.name}: {e.description}" for e in entities]


def consistency_block(context: ScriptAnalysisResult) -> str:
    lines = format_entities(context.character_descriptions, "CHARACTER") + format_entities(
        context.product_descriptions, "PRODUCT"
    )
    body = "\n".join(f"  {line}" for line in lines)
    return "- **Consistency:** Maintain strict visual consistency for the following:\n" + body


def shot_transcript(history: Sequence[GeneratedShot] | Sequence[ShotDescription]) -> str:
    return "\n".join(f"Shot {s.shot_number} ({s.shot_type}): {s.description}" for s in history)


def build_analysis_prompt(script: str, style: str, framing: str, has_reference_image: bool) -> str:
    return (
        "You are a professional cinematographer and script analyst. Your task is to break down a film script "
        "into a detailed, cinematic shot list.\n"
        "Follow these steps and strict rules precisely:\n\n"
        "**MANDATORY RULES:**\n"
        f"1. {framing_rule(framing)}\n"
        f"2. **Visual Style:** {style_instruction(style)}\n"
        f"3. **Image Analysis (if provided):** {image_instruction(has_reference_image)}\n\n"
        "**PROCESS:**\n"
        "1. Identify all main characters and key products. Create detailed, consistent physical descriptions "
        f"for each that fit the '{style}' aesthetic. These are CRITICAL for visual consistency.\n"
        "2. Generate a sequence of shots based on the script. Every shot you generate MUST adhere to the "
        "**MANDATORY RULES** above.\n"
        "3. For each shot, provide a detailed description suitable for an AI image generator, referencing the "
        "character/product descriptions to maintain 100% consistency. Each description must stand on its own.\n"
        "4. The final output must be a valid JSON object. Do not output any other text.\n\n"
        f"Script:\n---\n{script}\n---\n"
    )


def build_render_prompt(
    shot: ShotDescription,
    context: ScriptAnalysisResult,
    style: str,
    framing: str,
    aspect_ratio: str = "9:16",
) -> str:
    return (
        f"**Primary Mandate: The camera framing MUST be '{framing}'.** "
        f"{framing_instruction(framing)} This instruction overrides the 'shot_type' if there's a conflict. "
        "For example, if framing is 'Extra wide' but shot_type is 'Close-up', you MUST generate an Extra Wide "
        "shot that focuses on the subject.\n\n"
        f"**Style:** **{style}**.\n\n"
        "**Scene Details:**\n"
        f"- **Shot Type:** {shot.shot_type}.\n"
        f"- **Action:** {shot.description}.\n"
        f"- **Angle & Lens:** {shot.camera_angle}, {shot.lens} lens.\n"
        f"- **Movement:** {shot.movement}.\n"
        f"{consistency_block(context)}\n\n"
        "**Final Image Properties:**\n"
        f"{IMAGE_QUALITY_DIRECTIVES} Aspect ratio {aspect_ratio}.\n"
    )


def build_extension_prompt(
    script: str,
    context: ScriptAnalysisResult,
    history: Sequence[GeneratedShot],
    style: str,
    framing: str,
    next_shot_number: int,
    has_reference_image: bool,
) -> str:
    characters = "\n".join(format_entities(context.character_descriptions))
    products = "\n".join(format_entities(context.product_descriptions))
    image_note = (
        "The visual style must match the reference image provided initially.\n" if has_reference_image else ""
    )
    return (
        "You are a professional cinematographer continuing a shot list. Your task is to generate the "
        "*next logical shot*.\n\n"
        "**MANDATORY RULES:**\n"
        f"1. {framing_rule(framing)}\n"
        f"2. **Visual Style:** The style MUST be **'{style}'**. {style_instruction(style)}\n"
        "3. **Consistency:** Maintain 100% consistency with the established characters and visual style.\n"
        f"4. **Shot Number:** The new shot number must be {next_shot_number}.\n\n"
        "Based on the rules above and the context below, generate a single JSON object for the next shot. "
        "Do not output any other text.\n\n"
        f"Original Script:\n---\n{script}\n---\n\n"
        f"Established Characters:\n---\n{characters}\n---\n\n"
        f"Established Products:\n---\n{products}\n---\n\n"
        f"Previous Shots:\n---\n{shot_transcript(history)}\n---\n\n"
        f"{image_note}"
    )
