# pbf_studio/prompts.py
# This file centralizes all prompts sent to the Gemini models.
import re
from typing import Optional

from pbf_studio.context import DEFAULT_FACILITY_SPECS

PROMPT_START = "---PROMPT---"
PROMPT_END = "---END---"

_PROMPT_BLOCK = re.compile(re.escape(PROMPT_START) + r"\s*([\s\S]*?)\s*" + re.escape(PROMPT_END))

PROMPT_ENGINEERING_GUIDELINES = """
IMAGE PROMPT BEST PRACTICES:

STRUCTURE:
1. Camera angle/perspective (aerial, interior, exterior, close-up)
2. Lighting conditions (time of day, natural/artificial, mood)
3. Architectural style keywords (modern, industrial, high-tech)
4. Materials and textures (glass, steel, concrete, water)
5. Atmosphere (clean, premium, futuristic)
6. Technical style ("photorealistic architectural visualization")

GOOD EXAMPLES:
- "Aerial drone view at 45-degree angle of a modern aquaculture facility at golden hour, showing 12 circular blue fiberglass tanks arranged in 2 rows of 6 inside a glass-walled building, warm sunset lighting, photorealistic architectural visualization"
- "Interior view of a high-tech fish farm, standing at ground level looking down a corridor between two rows of 6 large circular tanks each 16m diameter, blue water with fish visible, LED lighting strips, epoxy floor, clean modern industrial aesthetic"

AVOID:
- Vague descriptions ("nice building", "cool tanks")
- Missing perspective/camera info
- Conflicting style elements
- Too short (under 50 words usually = poor results)
"""

INITIAL_ASSISTANT_MESSAGE = """היי! אני עוזר ליצירת ויזואליזציות של מתקן PBF.

ספר/י לי מה תרצה/י לראות - מבט מהאוויר? פנים המבנה? תחנת הקרנטינה?"""


def build_system_prompt(facility_specs: str, design_guidelines: str, company_context: str) -> str:
    return f"""You are a visualization assistant for Pure Blue Fish (PBF), an Israeli aquaculture company.

FACILITY SPECIFICATIONS:
{facility_specs}

DESIGN GUIDELINES:
{design_guidelines}

COMPANY CONTEXT:
{company_context}

{PROMPT_ENGINEERING_GUIDELINES}

YOUR TASK:
1. Understand what visualization the user wants
2. If the request is CLEAR (e.g., "aerial view at sunset", "interior with workers") - generate the prompt immediately
3. If the request is VAGUE (e.g., "show me something", "make it look good") - ask 1-2 clarifying questions first
4. Every prompt must respect the facility specifications and the design guidelines above

When ready to generate, output the optimized prompt in this EXACT format:

{PROMPT_START}
[Your optimized English prompt here, 80-150 words, highly detailed]
{PROMPT_END}

LANGUAGE:
- Respond in the same language the user writes (Hebrew or English)
- The final prompt inside {PROMPT_START} must ALWAYS be in English

TONE:
- Friendly, professional, helpful
- Brief responses - don't over-explain
- Get to the prompt quickly when possible
"""


def build_prompt_with_context(user_prompt: str, include_context: bool, custom_context: Optional[str] = None) -> str:
    if not include_context:
        return user_prompt

    context = custom_context or DEFAULT_FACILITY_SPECS
    return f"""{user_prompt}

---
FACILITY CONTEXT (use these specifications):
{context}
---

Generate a photorealistic architectural visualization based on the above specifications."""


def extract_prompt(content: str) -> Optional[str]:
    """Return the text between the prompt markers of an assistant reply, if any."""
    match = _PROMPT_BLOCK.search(content or "")
    return match.group(1).strip() if match else None


EDIT_IMAGE_INSTRUCTION = "Edit this image based on the following instructions:"

BLUEPRINT_INSTRUCTION = (
    "CRITICAL: Follow this architectural floor plan EXACTLY. Match the exact layout, "
    "position of tanks, walls, and structure shown in this blueprint:"
)
