"""
AI Service

Image analysis (pest / soil), grounded daily summaries and the agronomist chat.

Each analysis runs in two phases:
1. A schema-constrained primary call. Any failure here empties the whole result.
2. A best-effort speech synthesis call. Failure only drops the audio.
"""

import base64
import json
import logging
from typing import List, Optional

from agri_assist.config import (
    ANALYSIS_MODEL,
    SUMMARY_MODEL,
    TTS_MODEL,
    TTS_VOICE,
    TTS_AUDIO_FORMAT,
    SUMMARY_AUDIO_MAX_CHARS,
)
from agri_assist.models import (
    PestAnalysisResult,
    PestAnalysisResponse,
    SoilAnalysisResult,
    SoilAnalysisResponse,
    DailySummaryResult,
    DailySummaryResponse,
    SummarySource,
)
from agri_assist.services import services
from agri_assist.errors import AIServiceNotConfiguredError
from agri_assist.services.chat import AgronomistChat
from agri_assist.utils.templates import fill_template, join_items

logger = logging.getLogger(__name__)

# ============================================================================#
# RESPONSE SCHEMAS
# ============================================================================#
PEST_ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "pest_or_disease_name": {"type": "string"},
        "description": {"type": "string"},
        "preventive_measures": {"type": "array", "items": {"type": "string"}},
        "treatment_steps": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["pest_or_disease_name", "description", "preventive_measures", "treatment_steps"],
    "additionalProperties": False,
}

SOIL_ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "soil_type": {"type": "string"},
        "ph_level_estimate": {"type": "string"},
        "nutrient_deficiencies": {"type": "array", "items": {"type": "string"}},
        "recommendations": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["soil_type", "ph_level_estimate", "nutrient_deficiencies", "recommendations"],
    "additionalProperties": False,
}


def _json_response_format(name: str, schema: dict) -> dict:
    return {
        "type": "json_schema",
        "json_schema": {"name": name, "strict": True, "schema": schema},
    }


async def _analyze_image(base64_image: str, mime_type: str, text_prompt: str,
                         schema_name: str, schema: dict) -> str:
    """Send image + prompt and return the raw (stripped) JSON text"""
    response = await services.openai_client.chat.completions.create(
        model=ANALYSIS_MODEL,
        messages=[{
            "role": "user",
            "content": [
                {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{base64_image}"}},
                {"type": "text", "text": text_prompt},
            ],
        }],
        response_format=_json_response_format(schema_name, schema),
    )
    return (response.choices[0].message.content or "").strip()


async def synthesize_speech(prompt: str) -> Optional[str]:
    """Render text as speech with the preset voice, returning base64 audio"""
    response = await services.openai_client.audio.speech.create(
        model=TTS_MODEL,
        voice=TTS_VOICE,
        input=prompt,
        response_format=TTS_AUDIO_FORMAT,
    )
    audio_bytes = response.content
    if not audio_bytes:
        return None
    return base64.b64encode(audio_bytes).decode("utf-8")


async def _try_synthesize(prompt_builder, operation: str) -> Optional[str]:
    # Audio is optional; the cause of a failure is not reported to callers
    try:
        return await synthesize_speech(prompt_builder())
    except Exception as e:
        logger.warning(f"Audio synthesis failed in {operation}: {e}")
        return None


# ============================================================================#
# PEST ANALYSIS
# ============================================================================#
def build_pest_audio_prompt(template: str, analysis: PestAnalysisResult) -> str:
    return fill_template(template, {
        "name": analysis.pest_or_disease_name,
        "description": analysis.description,
        "prevention": join_items(analysis.preventive_measures),
        "treatment": join_items(analysis.treatment_steps),
    })


async def analyze_pest(
    base64_image: str,
    mime_type: str,
    text_prompt: str,
    audio_prompt_template: str,
) -> PestAnalysisResponse:
    """Identify a pest or disease from an image and add a spoken summary"""
    if not services.openai_client:
        logger.error("OpenAI API key not configured")
        return PestAnalysisResponse()

    try:
        json_text = await _analyze_image(
            base64_image, mime_type, text_prompt, "pest_analysis", PEST_ANALYSIS_SCHEMA
        )
        if not json_text:
            logger.warning("Pest analysis returned empty response")
            return PestAnalysisResponse()
        analysis = PestAnalysisResult(**json.loads(json_text))
    except Exception as e:
        logger.error(f"Error in analyze_pest: {e}", exc_info=True)
        return PestAnalysisResponse()

    logger.info(f"Pest analysis: {analysis.pest_or_disease_name}")
    audio_base64 = await _try_synthesize(
        lambda: build_pest_audio_prompt(audio_prompt_template, analysis), "analyze_pest"
    )
    return PestAnalysisResponse(analysis=analysis, audio_base64=audio_base64)


# ============================================================================#
# SOIL ANALYSIS
# ============================================================================#
def build_soil_audio_prompt(template: str, analysis: SoilAnalysisResult) -> str:
    return fill_template(template, {
        "type": analysis.soil_type,
        "ph": analysis.ph_level_estimate,
        "deficiencies": join_items(analysis.nutrient_deficiencies),
        "recommendations": join_items(analysis.recommendations),
    })


async def analyze_soil_by_image(
    base64_image: str,
    mime_type: str,
    text_prompt: str,
    audio_prompt_template: str,
) -> SoilAnalysisResponse:
    """Estimate soil type, pH and deficiencies from an image"""
    if not services.openai_client:
        logger.error("OpenAI API key not configured")
        return SoilAnalysisResponse()

    try:
        json_text = await _analyze_image(
            base64_image, mime_type, text_prompt, "soil_analysis", SOIL_ANALYSIS_SCHEMA
        )
        if not json_text:
            logger.warning("Soil analysis returned empty response")
            return SoilAnalysisResponse()
        analysis = SoilAnalysisResult(**json.loads(json_text))
    except Exception as e:
        logger.error(f"Error in analyze_soil_by_image: {e}", exc_info=True)
        return SoilAnalysisResponse()

    logger.info(f"Soil analysis: {analysis.soil_type} (pH {analysis.ph_level_estimate})")
    audio_base64 = await _try_synthesize(
        lambda: build_soil_audio_prompt(audio_prompt_template, analysis), "analyze_soil_by_image"
    )
    return SoilAnalysisResponse(analysis=analysis, audio_base64=audio_base64)


# ============================================================================#
# DAILY SUMMARY
# ============================================================================#
def _extract_sources(message) -> List[SummarySource]:
    sources = []
    for annotation in getattr(message, "annotations", None) or []:
        if getattr(annotation, "type", None) != "url_citation":
            continue
        citation = annotation.url_citation
        sources.append(SummarySource(url=citation.url, title=citation.title or ""))
    return sources


def build_summary_audio_prompt(template: str, summary_text: str) -> str:
    # The main text might be long; keep the synthesis request bounded
    return fill_template(template, {"text": summary_text[:SUMMARY_AUDIO_MAX_CHARS]})


async def get_daily_summary(text_prompt: str, audio_prompt_template: str) -> DailySummaryResponse:
    """Daily farming summary from live web search, plus a spoken version"""
    if not services.openai_client:
        logger.error("OpenAI API key not configured")
        return DailySummaryResponse()

    try:
        response = await services.openai_client.chat.completions.create(
            model=SUMMARY_MODEL,
            web_search_options={},
            messages=[{"role": "user", "content": text_prompt}],
        )
        message = response.choices[0].message
        summary_text = message.content
        if not summary_text:
            logger.warning("Daily summary returned empty response")
            return DailySummaryResponse()
        summary = DailySummaryResult(text=summary_text, sources=_extract_sources(message))
    except Exception as e:
        logger.error(f"Error in get_daily_summary: {e}", exc_info=True)
        return DailySummaryResponse()

    logger.info(f"Daily summary: {len(summary.text)} chars, {len(summary.sources)} sources")
    audio_base64 = await _try_synthesize(
        lambda: build_summary_audio_prompt(audio_prompt_template, summary.text), "get_daily_summary"
    )
    return DailySummaryResponse(summary=summary, audio_base64=audio_base64)


# ============================================================================#
# CHAT
# ============================================================================#
def create_agronomist_chat(system_instruction: str) -> AgronomistChat:
    """Start a new agronomist chat session (low temperature, deterministic answers)"""
    if not services.openai_client:
        logger.error("OpenAI API key not configured")
        raise AIServiceNotConfiguredError("Agronomist chat requires OPENAI_API_KEY")
    return AgronomistChat(services.openai_client, system_instruction)
