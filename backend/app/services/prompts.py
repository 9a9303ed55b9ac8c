"""
Prompt templates for the analyze -> generate pipeline.

Templates use ``string.Template`` placeholders ($name). render() checks that
every placeholder is supplied before substituting, and substitution happens
in a single pass so user text containing ``$`` is never expanded again.
"""
from dataclasses import dataclass
from string import Template
from typing import Optional

from app.core.errors import ValidationError


OUTPUT_TYPE_SCRIPT = "Script"
OUTPUT_TYPE_SCRIPT_AND_ANALYSIS = "Script & Analysis"
OUTPUT_TYPE_VIDEO_PROMPTS = "AI Video Prompts"


def render(template: Template, **params: str) -> str:
    """
    Fill a template, refusing missing or non-string values.

    Args:
        template: Template with $placeholders
        **params: Value per placeholder

    Returns:
        Rendered prompt text

    Raises:
        ValueError: If a placeholder has no value or a value is not a string
    """
    for key, value in params.items():
        if not isinstance(value, str):
            raise ValueError(f"Prompt parameter '{key}' must be a string, got {type(value).__name__}")

    required = set(template.get_identifiers())
    missing = required - set(params)
    if missing:
        raise ValueError(f"Missing prompt parameters: {', '.join(sorted(missing))}")

    return template.substitute(params)


VIDEO_ANALYSIS_PROMPT = Template("""
You are Vyralize, an expert system that deconstructs why short-form videos go viral. Study the attached source video as a whole (visuals, audio, pacing, spoken words) and extract the signals that drive its performance.

Respond with a single JSON object and nothing else. No prose, no markdown.

Use exactly this shape:
{
  "meta": {
    "analyzed_style": "e.g. Fast-paced explainer, Vlog, Tutorial",
    "primary_tone": "e.g. Energetic, Authoritative, Humorous"
  },
  "hook_analysis": {
    "technique": "What happens in the first 3-5 seconds to stop the scroll.",
    "pacing": "Edit speed and information density of the hook.",
    "emotional_trigger": "The immediate emotion evoked (Curiosity, Surprise, FOMO...)."
  },
  "retention_signals": {
    "pacing_strategy": "Overall pacing: how often shots change and how B-roll is used.",
    "narrative_structure": "The narrative arc (Problem-Solution-Result, Listicle, Story...).",
    "visual_style": "The aesthetic (Cinematic, Lo-fi, Raw vlog, High contrast...)."
  },
  "engagement_tactics": {
    "ctas": ["Each call to action, verbal or on screen."],
    "interactive_elements": "What invites comments, likes or shares."
  }
}
""")

IMAGE_ANALYSIS_PROMPT = Template("""
You are an expert image analyst. Describe the attached image in as much specific detail as possible and return it as one JSON object. Output JSON only, with no introduction and no markdown.

Shape:
{
  "subjects": [
    {
      "name": "Name of the person, object or character; a descriptive title if unknown",
      "description": "Appearance, clothing, action and expression",
      "prominence": "primary | secondary | background"
    }
  ],
  "setting": {
    "location": "e.g. Outdoors in a dense forest, Indoor rally stage",
    "time_of_day": "e.g. Daytime, Golden hour, Night",
    "context": "What is happening in the scene"
  },
  "style_elements": {
    "artistic_medium": "e.g. Digital photograph, Oil painting, 3D render",
    "photography_style": "e.g. Candid, News photography, Portrait",
    "lighting": "e.g. Harsh flash, Soft natural light, Chiaroscuro",
    "color_palette": {
      "dominant_colors": ["#hex1", "#hex2"],
      "description": "e.g. Saturated reds and blues, Muted earth tones"
    },
    "composition": "e.g. Medium close-up, Rule of thirds, Dutch angle",
    "overall_mood": "e.g. Tense, Serene, Celebratory"
  }
}
""")

SCRIPT_TEMPLATE = Template("""
You are an expert video scriptwriter. Use the viral analysis below as a blueprint for a brand new script.

Source analysis blueprint:
$analysis_json

New topic: $user_topic
Desired format: $output_detail

Instructions:
1. Write a complete script for the new topic.
2. Carry the techniques identified in the blueprint over to the new script.
3. Hook: reproduce the approach described in hook_analysis.technique and hook_analysis.pacing.
4. Structure: follow retention_signals.narrative_structure.
5. Tone: adopt meta.primary_tone.

Format it as a script with [Visuals/B-roll suggestions] and (Audio/Tone cues) markers.
""")

STORYBOARD_TEMPLATE = Template("""
You are an AI video director. Write a sequence of detailed visual prompts for a text-to-video model, using the viral analysis below as the stylistic blueprint.

Source analysis blueprint:
$analysis_json

New topic: $user_topic
Desired format: $output_detail

Instructions:
1. Storyboard the new topic as distinct scenes: 5-8 scenes for Short Form, 8-15 for Long Form.
2. The narrative flow must follow retention_signals.narrative_structure.
3. The look must match retention_signals.visual_style.

Each prompt must be concrete and visual: lighting, camera angle (close-up, wide, drone, POV), subject, action, setting and mood.
Example: "Cinematic wide shot at golden hour. [subject] doing [action]. [visual style details]. Slow motion, 4k."

Return only a JSON array of strings, one per scene, with no text before or after it.
Example: ["Scene 1 prompt...", "Scene 2 prompt..."]
""")

SHORT_SCRIPT_TEMPLATE = Template("""
You are an expert scriptwriter for short-form vertical video (TikTok, Reels, Shorts). Use the viral analysis below as a blueprint for a new script.

Source analysis blueprint:
$analysis_json

New topic: $user_topic

Instructions:
1. Write a complete short-form script of roughly 45-90 seconds.
2. Carry the techniques identified in the blueprint over to the new script.
3. Hook: reproduce the approach described in hook_analysis.technique and hook_analysis.pacing.
4. Structure: follow retention_signals.narrative_structure.
5. Tone: adopt meta.primary_tone.

Format it as a script with [Visuals/B-roll suggestions] and (Audio/Tone cues) markers.
""")

SHORT_STORYBOARD_TEMPLATE = Template("""
You are an AI video director. Write a sequence of detailed visual prompts for a text-to-video model for a short vertical video, using the viral analysis below as the stylistic blueprint.

Source analysis blueprint:
$analysis_json

New topic: $user_topic

Instructions:
1. Storyboard the new topic as a 45-90 second video split into 5-10 distinct scenes.
2. The narrative flow must follow retention_signals.narrative_structure.
3. The look must match retention_signals.visual_style and suit vertical viewing.

Each prompt must be concrete and visual: lighting, camera angle (close-up, POV, dynamic), subject, action, setting and mood.
Example: "Vertical format, dynamic close-up. [subject] doing [action]. [visual style details]. High energy, 4k."

Return only a JSON array of strings, one per scene, with no text before or after it.
Example: ["Scene 1 prompt...", "Scene 2 prompt..."]
""")

STYLE_DESCRIPTOR_PROMPT = Template("""
You are an art director. From the structured image analysis below, write one dense paragraph describing $focus.

Image analysis:
$analysis_json

Output only the paragraph.
""")

STYLE_FOCUS_EXTRACT = (
    "only the visual style: medium, photography style, lighting, color palette, "
    "composition and mood. Do not describe the specific subjects or the setting"
)
STYLE_FOCUS_REMIX = (
    "the visual style (medium, lighting, color palette, composition, mood) together "
    "with the kind of subjects and setting shown, so the scene can be re-imagined "
    "around a new topic"
)

IMAGE_PROMPT_TEMPLATE = Template("""
You are a prompt engineer for a text-to-image model. Combine the user's goal with the reference style into one cohesive, descriptive paragraph that will be sent to the image model.

User's goal:
- Topic: "$user_topic"
- Details: "$details"

Reference style:
$style_descriptor

Style influence: $style_influence/100 (100 = follow the reference style closely, 50 = balanced blend, 0 = ignore the reference and use only the topic and details).

Rules:
1. Describe the new scene for the topic, rendered in the reference style scaled by the influence level.
2. Be vivid: medium, lighting, focus, color palette and mood.
3. If the topic names a real person, do not ask for a photorealistic likeness and do not use their name. Describe their distinguishing features instead (hair, clothing, posture, setting) in an illustrative style.
4. The image must contain NO TEXT, WORDS, LETTERS OR NUMBERS of any kind. Do not include anything that could make the model render text.

Output only the final prompt paragraph.
""")

SOCIAL_POSTS_PROMPT = Template("""
You are a social media copywriter.

Topic: "$user_topic"
Details: "$details"

Write one post per platform, matching each platform's voice:
- linkedin: an insightful short paragraph in a professional tone with a call to action and few emojis.
- twitter: concise, witty and under 270 characters, with relevant hashtags.
- instagram: visual and upbeat, with emojis and a strong set of hashtags.

Return only a JSON object with the keys "linkedin", "twitter" and "instagram".
""")

HEADLINE_PROMPT = Template("""
Write one bold, catchy headline of 6-10 words to overlay on an image about the topic below.

Topic: "$user_topic"
Details: "$details"

Output only the headline text, without quotes.
""")


@dataclass(frozen=True)
class TemplateSelection:
    template: Template
    json_output: bool


def select_template(output_type: str, output_detail: Optional[str] = None) -> TemplateSelection:
    """
    Choose the Phase 2 template for an output type.

    Args:
        output_type: "Script", "Script & Analysis" or "AI Video Prompts"
        output_detail: "Short Form" / "Long Form"; None selects the fixed
            short-form variants used when only Phase 2 runs

    Returns:
        TemplateSelection with the template and whether the result is a JSON array

    Raises:
        ValidationError: For an unknown output type
    """
    if output_type in (OUTPUT_TYPE_SCRIPT, OUTPUT_TYPE_SCRIPT_AND_ANALYSIS):
        template = SHORT_SCRIPT_TEMPLATE if output_detail is None else SCRIPT_TEMPLATE
        return TemplateSelection(template=template, json_output=False)

    if output_type == OUTPUT_TYPE_VIDEO_PROMPTS:
        template = SHORT_STORYBOARD_TEMPLATE if output_detail is None else STORYBOARD_TEMPLATE
        return TemplateSelection(template=template, json_output=True)

    raise ValidationError(f"Unknown output type: {output_type}")
