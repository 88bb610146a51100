"""Prompt builders for the text pipelines.

Every builder is a pure function of a ``PromptContext``. ``compile_prompt``
looks the builder up by request type and adds the instructions shared by all
templates: brand personalization and the attached-image rule. Structured
types embed the literal JSON shape they must answer with.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import UnknownType
from ..models.account import BrandContext
from ..models.request import GenerationPayload, num_variations


DEFAULT_TONE_INSTRUCTION = "Use a professional and engaging tone."

IMAGE_INSTRUCTION = (
    "An image is attached. Treat it as the primary source material: base the "
    "content on what the image actually shows, and use the topic only as "
    "additional direction."
)

DEFAULT_NUM_IDEAS = 5
DEFAULT_NUM_OUTPUTS = 3
DEFAULT_TOTAL_STEPS = 60

VIDEO_WORD_BANDS: Dict[str, str] = {
    "short": "100-150",
    "medium": "250-350",
    "long": "600-800",
}

VERIFIED_TOOLS: Tuple[Dict[str, str], ...] = (
    {"name": "Video Script Generator", "url": "/generate?type=videoScript", "description": "Generate viral scripts with hooks."},
    {"name": "Tweet Generator", "url": "/generate?type=tweet", "description": "Create engaging threads."},
    {"name": "Caption Generator", "url": "/generate?type=caption", "description": "Write perfect captions."},
    {"name": "Content Idea Generator", "url": "/generate?type=idea", "description": "Brainstorm viral topics."},
    {"name": "CapCut", "url": "https://www.capcut.com", "description": "Video editing."},
    {"name": "Canva", "url": "https://www.canva.com", "description": "Graphic design."},
    {"name": "OBS Studio", "url": "https://obsproject.com", "description": "Streaming software."},
)

# (upper bound of progress %, phase name, focus)
ROADMAP_PHASES: Tuple[Tuple[int, str, str], ...] = (
    (15, "FOUNDATION", "creating accounts, setting up profiles, installing software, organizing the workspace"),
    (40, "CONTENT CREATION", "the first full content workflow done once (record, edit, thumbnail, upload), then optimization"),
    (60, "CONSISTENCY", "content calendars, batch workflows, analytics review, quality improvement"),
    (75, "COMMUNITY", "engagement, replies, collaborations, community spaces"),
    (90, "GROWTH", "repurposing, trends, cross-platform distribution"),
    (100, "MONETIZATION", "revenue streams, partnerships, products"),
)


@dataclass(frozen=True)
class PromptContext:
    topic: str = ""
    tones: Sequence[str] = ()
    options: Mapping[str, Any] = field(default_factory=dict)
    has_image: bool = False
    brand: BrandContext = field(default_factory=BrandContext)
    payload: GenerationPayload = field(default_factory=GenerationPayload)

    @classmethod
    def from_payload(cls, payload: GenerationPayload, brand: BrandContext) -> "PromptContext":
        return cls(
            topic=payload.topic or "",
            tones=tuple(payload.tones),
            options=dict(payload.options),
            has_image=payload.has_image,
            brand=brand,
            payload=payload,
        )


def tone_instruction(tones: Sequence[str]) -> str:
    if not tones:
        return DEFAULT_TONE_INSTRUCTION
    return f"Use the following tones: {', '.join(tones)}."


def brand_instruction(brand: BrandContext) -> str:
    if brand.is_empty:
        return ""
    details = []
    if brand.name:
        details.append(f"Brand name: {brand.name}")
    if brand.industry:
        details.append(f"Industry: {brand.industry}")
    if brand.audience:
        details.append(f"Target audience: {brand.audience}")
    if brand.tone:
        details.append(f"Brand voice: {brand.tone}")
    return "You are writing for this brand. " + "; ".join(details) + ". Tailor the content to it."


def json_only(shape: str) -> str:
    return (
        "Return ONLY valid JSON in exactly this shape, with no markdown, "
        f"no explanations and no other text:\n{shape}"
    )


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


# --- short-form content --------------------------------------------------


def build_caption(ctx: PromptContext) -> str:
    count = ctx.options.get("numOutputs", DEFAULT_NUM_OUTPUTS)
    lines = [
        f'Write {count} social media captions about: "{ctx.topic}".',
        tone_instruction(ctx.tones),
    ]
    if ctx.options.get("wordCount"):
        lines.append(f"Each caption should be about {ctx.options['wordCount']} words long.")
    if ctx.options.get("hashtagsOnly"):
        lines.append("Return only hashtags: leave the caption text empty.")
    elif ctx.options.get("noHashtags"):
        lines.append("Do not include any hashtags.")
    else:
        lines.append("Include 3 to 6 relevant hashtags for each caption.")
    if ctx.options.get("includeEmojis"):
        lines.append("Use emojis where they feel natural.")
    lines.append("Make it engaging and encourage interaction.")
    lines.append(json_only('[{"caption": "Caption text here", "hashtags": ["#tag1", "#tag2"]}]'))
    return "\n".join(lines)


def build_idea(ctx: PromptContext) -> str:
    count = ctx.options.get("numIdeas", DEFAULT_NUM_IDEAS)
    lines = [
        f'Generate {count} fresh, specific content ideas about: "{ctx.topic}".',
        tone_instruction(ctx.tones),
    ]
    if ctx.options.get("includeReels"):
        lines.append("Focus on video/Reel ideas.")
    if ctx.options.get("includeCarousels"):
        lines.append("Focus on Carousel post ideas.")
    if ctx.options.get("includeStatic"):
        lines.append("Focus on static image post ideas.")
    if ctx.options.get("asJson"):
        lines.append(
            json_only(
                '[{"title": "Idea title", "description": "One or two sentences", '
                '"format": "reel | carousel | static | thread"}]'
            )
        )
    else:
        lines.append(
            "Number each idea. For each one give a short title on the first line "
            "and a one or two sentence description on the next."
        )
    return "\n".join(lines)


def build_tweet(ctx: PromptContext) -> str:
    count = ctx.options.get("numTweets", 1)
    lines = []
    if ctx.options.get("thread"):
        lines.append(f'Write a Twitter/X thread of {count} tweets about: "{ctx.topic}".')
    else:
        lines.append(f'Write {count} standalone tweets about: "{ctx.topic}".')
    lines.append(tone_instruction(ctx.tones))
    lines.append("Keep every tweet under 280 characters.")
    if ctx.options.get("includeHashtags"):
        lines.append("End each tweet with one or two relevant hashtags.")
    if ctx.options.get("includeEmojis"):
        lines.append("Use emojis sparingly.")
    lines.append("Separate tweets with a blank line and do not number them.")
    return "\n".join(lines)


def build_video_script(ctx: PromptContext) -> str:
    video_length = ctx.options.get("videoLength", "60 seconds")
    band = VIDEO_WORD_BANDS.get(str(ctx.options.get("length", "medium")), VIDEO_WORD_BANDS["medium"])
    lines = [
        f'Write a video script about: "{ctx.topic}".',
        tone_instruction(ctx.tones),
        f"Target length: {video_length}, roughly {band} words of narration.",
        "Structure it as:",
        "HOOK: the first 3 seconds that stop the scroll.",
        "BODY: the main points, with short on-screen text suggestions in [brackets].",
        "CALL TO ACTION: one clear next step for the viewer.",
    ]
    if ctx.options.get("language"):
        lines.append(f"Write the script in {ctx.options['language']}.")
    return "\n".join(lines)


def build_post(ctx: PromptContext) -> str:
    platform = ctx.payload.platform or ctx.options.get("platform") or "social media"
    variations = num_variations(ctx.options)
    lines = [
        f'Write {variations} variation(s) of a {platform} post about: "{ctx.topic}".',
        tone_instruction(ctx.tones),
        "Open with a strong first line, keep paragraphs short and easy to skim.",
    ]
    if ctx.options.get("includeCTA"):
        lines.append("Finish with a clear call to action.")
    if ctx.options.get("includeHashtags", True):
        lines.append("Put 3 to 8 relevant hashtags on the last line, each starting with #.")
    else:
        lines.append("Do not include hashtags.")
    lines.append("Return only the post text, separating variations with a line containing ---.")
    return "\n".join(lines)


# --- guide family ----------------------------------------------------------


DYNAMIC_GUIDE_SHAPE = (
    '{"questions": [{"stepId": 4, "question": "Question text", "keyName": "camelCaseKey", '
    '"type": "radio | text | select", "options": ["Option A", "Option B"], "required": true}]}'
)

FINAL_GUIDE_SHAPE = (
    '{"title": "string", "summary": "string", '
    '"profileSetup": {"username": "string", "bio": "string", "profilePicture": "string"}, '
    '"contentPillars": ["string"], '
    '"weeklyPlan": [{"day": "string", "task": "string"}], '
    '"firstPosts": [{"title": "string", "hook": "string"}], '
    '"tips": ["string"]}'
)

DIALOGUE_SHAPE = (
    '{"ready": false, "question": {"text": "Question text", '
    '"type": "text | radio | select", "options": ["Option A", "Option B"]}}'
)

ROADMAP_SHAPE = (
    '{"roadmapSteps": [{"title": "string", "description": "string", "action": "string", '
    '"reason": "string", "completionCondition": "string", "recommendedTools": ["string"]}]}'
)

PILLARS_SHAPE = (
    '{"pillars": [{"name": "string", "description": "string", "exampleTopics": ["string"]}]}'
)

CHECKLIST_SHAPE = (
    '{"checklist": [{"task": "string", "category": "string", "priority": "high | medium | low"}]}'
)

NARROWING_SHAPE = (
    '{"questions": [{"text": "Question text", "options": ["Option A", "Option B", '
    '"Other (type your own)"]}], "isFinalized": false}'
)


def _core_data_lines(core: Mapping[str, Any]) -> List[str]:
    return [
        f"- Niche: {core.get('niche') or 'not specified'}",
        f"- Goal: {core.get('goal') or core.get('primaryGoal') or 'not specified'}",
        f"- Tone: {core.get('tone') or 'not specified'}",
        f"- Time commitment: {core.get('commitment') or core.get('timeCommitment') or 'not specified'}",
    ]


def build_dynamic_guide(ctx: PromptContext) -> str:
    schema = ctx.payload.json_schema
    shape = _dump(schema) if schema else DYNAMIC_GUIDE_SHAPE
    lines = [
        "You are onboarding a new content creator. Known answers:",
        *_core_data_lines(ctx.payload.core_data),
        "Generate 3 follow-up questions that fill the gaps needed to plan their first month of content.",
        "Never ask about anything already known. Prefer radio questions with 3 or 4 short options.",
        json_only(shape),
    ]
    return "\n".join(lines)


def build_final_guide(ctx: PromptContext) -> str:
    lines = [
        "You are a content strategist writing a personalized starter guide for a creator.",
        f"Onboarding answers: {_dump(ctx.payload.form_data)}",
        f"Follow-up answers: {_dump(ctx.payload.dynamic_answers)}",
        "Every recommendation must be concrete and doable this week. No generic advice.",
        json_only(FINAL_GUIDE_SHAPE),
    ]
    return "\n".join(lines)


def build_dialogue_turn(ctx: PromptContext) -> str:
    return build_dialogue_prompt(ctx.payload.core_data, ctx.payload.history)


def build_dialogue_prompt(core_data: Mapping[str, Any], history: Sequence[Any]) -> str:
    transcript = [
        f"Q{index}: {_turn_text(turn, 'question')}\nA{index}: {_turn_text(turn, 'answer')}"
        for index, turn in enumerate(history, start=1)
    ]
    lines = [
        "You are interviewing a content creator, one question at a time, to build their content plan.",
        "Known profile:",
        *_core_data_lines(core_data),
        "Conversation so far:",
        "\n".join(transcript) if transcript else "(no questions asked yet)",
        "Decide whether you now know enough about their niche, audience, format and schedule.",
        'If you do, answer with {"ready": true}.',
        "Otherwise ask exactly ONE new question that was not asked before. "
        "For radio or select questions give at most 5 short options.",
        json_only(DIALOGUE_SHAPE),
    ]
    return "\n".join(lines)


def _turn_text(turn: Any, key: str) -> str:
    if isinstance(turn, Mapping):
        value = turn.get(key)
        if isinstance(value, Mapping):
            value = value.get("text")
        return str(value) if value is not None else ""
    return str(turn)


def roadmap_phase(start_step: int, total_steps: int) -> Tuple[int, str, str]:
    progress = round(start_step / total_steps * 100) if total_steps else 0
    for bound, name, focus in ROADMAP_PHASES:
        if progress < bound:
            return progress, name, focus
    bound, name, focus = ROADMAP_PHASES[-1]
    return progress, name, focus


def build_roadmap_batch(ctx: PromptContext) -> str:
    payload = ctx.payload
    total = payload.total_steps or DEFAULT_TOTAL_STEPS
    start = payload.start_step or 1
    end = payload.end_step or min(start + 9, total)
    progress, phase, focus = roadmap_phase(start, total)
    tools = "\n".join(f"- {t['name']} ({t['url']}): {t['description']}" for t in VERIFIED_TOOLS)
    lines = [
        "You are a Roadmap Architect creating an execution guide for a content creator.",
        f"Topic: {ctx.topic or 'General Content Strategy'}",
        f"Platform: {payload.platform or 'general'}",
        f"Creator profile: {_dump(payload.form_data)}",
        f"Follow-up answers: {_dump(payload.dynamic_answers)}",
        f"Batch: steps {start} to {end} of {total} ({progress}% complete).",
        f"Current phase: {phase}. Focus only on {focus}.",
        f"Previous steps: {_dump(payload.previous_steps)}",
        "Never repeat a task type already covered by a previous step or earlier in this batch.",
        "Prefer these verified tools when they fit:",
        tools,
        json_only(ROADMAP_SHAPE),
    ]
    return "\n".join(lines)


def build_pillars(ctx: PromptContext) -> str:
    lines = [
        "Define 3 to 5 content pillars for this creator.",
        f"Creator profile: {_dump(ctx.payload.form_data)}",
        "Each pillar must be distinct and support at least 10 posts.",
        json_only(PILLARS_SHAPE),
    ]
    return "\n".join(lines)


def build_checklist(ctx: PromptContext) -> str:
    lines = [
        "Write a launch checklist of 8 to 12 tasks for this creator.",
        f"Creator profile: {_dump(ctx.payload.form_data)}",
        "Order the tasks so each one can be started as soon as the previous is done.",
        json_only(CHECKLIST_SHAPE),
    ]
    return "\n".join(lines)


def build_next_question(ctx: PromptContext) -> str:
    core = ctx.payload.core_data
    platform = ctx.payload.platform or "general"
    lines = [
        "You are a content niche narrowing engine. Narrow down what the creator will actually make.",
        "Context (already known, do NOT ask again):",
        f"- Topic: {ctx.topic}",
        f"- Platform: {platform}",
        f"- Audience: {core.get('targetAudience') or 'not specified'}",
        f"- Goal: {core.get('primaryGoal') or 'not specified'}",
        f"- Tone: {core.get('tone') or 'not specified'}",
        f"- Time commitment: {core.get('timeCommitment') or 'not specified'}",
        f"- Preferred format: {core.get('contentPreference') or 'not specified'}",
        "Ask 2 or 3 concrete, activity-based questions about what they enjoy making.",
        "Avoid abstract words such as strategy, develop, build, approach or grow.",
        'Always include "Other (type your own)" as the last option.',
        "Set isFinalized to true once a single clear direction is reached.",
        json_only(NARROWING_SHAPE),
    ]
    return "\n".join(lines)


PromptBuilder = Callable[[PromptContext], str]

PROMPT_BUILDERS: Dict[str, PromptBuilder] = {
    "caption": build_caption,
    "idea": build_idea,
    "tweet": build_tweet,
    "videoScript": build_video_script,
    "post": build_post,
    "dynamicGuide": build_dynamic_guide,
    "finalGuide": build_final_guide,
    "dynamicGuideIterative": build_dialogue_turn,
    "generateRoadmapBatch": build_roadmap_batch,
    "generatePillars": build_pillars,
    "generateChecklist": build_checklist,
    "generateNextQuestion": build_next_question,
}


def has_prompt(request_type: Optional[str]) -> bool:
    return request_type in PROMPT_BUILDERS


def compile_prompt(request_type: Optional[str], ctx: PromptContext) -> str:
    builder = PROMPT_BUILDERS.get(request_type or "")
    if builder is None:
        raise UnknownType(request_type)

    sections = []
    brand = brand_instruction(ctx.brand)
    if brand:
        sections.append(brand)
    sections.append(builder(ctx))
    if ctx.has_image:
        sections.append(IMAGE_INSTRUCTION)
    return "\n\n".join(sections)
