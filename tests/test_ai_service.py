"""
Tests for the AI service (pest / soil analysis, daily summary, chat)

The OpenAI client is replaced with mocks, no network needed:
    python -m pytest tests/test_ai_service.py -v
"""
import asyncio
import base64
import json
import os
import sys
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from agri_assist.errors import AIServiceNotConfiguredError
from agri_assist.services import ai_service
from agri_assist.services.chat import AgronomistChat


PEST_JSON = {
    "pest_or_disease_name": "Aphids",
    "description": "Small sap-sucking insects",
    "preventive_measures": ["Check leaves weekly", "Remove weeds"],
    "treatment_steps": ["Spray neem oil", "Release ladybugs"],
}

SOIL_JSON = {
    "soil_type": "Clay loam",
    "ph_level_estimate": "6.5",
    "nutrient_deficiencies": ["Nitrogen", "Zinc"],
    "recommendations": ["Add compost", "Apply zinc sulfate"],
}

PEST_TEMPLATE = "Found {name}. {description}. Prevention: {prevention}. Treatment: {treatment}."
SOIL_TEMPLATE = "Soil is {type} with pH {ph}. Missing: {deficiencies}. Do: {recommendations}."


def make_completion(content, annotations=None):
    message = SimpleNamespace(content=content, annotations=annotations)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_client(completion_content=None, completion_error=None, audio=b"audio-bytes", audio_error=None,
                annotations=None):
    client = MagicMock()
    if completion_error is not None:
        client.chat.completions.create = AsyncMock(side_effect=completion_error)
    else:
        client.chat.completions.create = AsyncMock(
            return_value=make_completion(completion_content, annotations)
        )
    if audio_error is not None:
        client.audio.speech.create = AsyncMock(side_effect=audio_error)
    else:
        client.audio.speech.create = AsyncMock(return_value=SimpleNamespace(content=audio))
    return client


def url_citation(url, title):
    return SimpleNamespace(type="url_citation", url_citation=SimpleNamespace(url=url, title=title))


# =============================================================================
# Pest analysis
# =============================================================================
class TestAnalyzePest:
    def _run(self, client, template=PEST_TEMPLATE):
        with patch("agri_assist.services.services.openai_client", client):
            return asyncio.run(ai_service.analyze_pest("aW1hZ2U=", "image/jpeg", "What pest?", template))

    @pytest.mark.parametrize("content", ["", "   \n", None])
    def test_empty_response_gives_no_analysis_no_audio(self, content):
        client = make_client(completion_content=content)
        result = self._run(client)
        assert result.analysis is None
        assert result.audio_base64 is None
        client.audio.speech.create.assert_not_called()

    def test_success_returns_analysis_and_audio(self):
        client = make_client(completion_content=json.dumps(PEST_JSON))
        result = self._run(client)
        assert result.analysis.pest_or_disease_name == "Aphids"
        assert result.analysis.treatment_steps == ["Spray neem oil", "Release ladybugs"]
        assert result.audio_base64 == base64.b64encode(b"audio-bytes").decode("utf-8")

    def test_audio_failure_keeps_analysis(self):
        client = make_client(completion_content=json.dumps(PEST_JSON), audio_error=RuntimeError("rate limited"))
        result = self._run(client)
        assert result.analysis is not None
        assert result.analysis.description == "Small sap-sucking insects"
        assert result.audio_base64 is None

    def test_empty_audio_gives_none(self):
        client = make_client(completion_content=json.dumps(PEST_JSON), audio=b"")
        result = self._run(client)
        assert result.analysis is not None
        assert result.audio_base64 is None

    def test_provider_error_gives_nothing(self):
        client = make_client(completion_error=RuntimeError("model outage"))
        result = self._run(client)
        assert result.analysis is None
        assert result.audio_base64 is None
        client.audio.speech.create.assert_not_called()

    def test_malformed_json_gives_nothing(self):
        client = make_client(completion_content="{not json")
        result = self._run(client)
        assert result.analysis is None
        assert result.audio_base64 is None

    def test_missing_required_field_gives_nothing(self):
        partial = dict(PEST_JSON)
        del partial["treatment_steps"]
        client = make_client(completion_content=json.dumps(partial))
        result = self._run(client)
        assert result.analysis is None
        assert result.audio_base64 is None

    def test_audio_prompt_is_filled_and_joined(self):
        client = make_client(completion_content=json.dumps(PEST_JSON))
        self._run(client)
        kwargs = client.audio.speech.create.call_args.kwargs
        assert kwargs["input"] == (
            "Found Aphids. Small sap-sucking insects. "
            "Prevention: Check leaves weekly. Remove weeds. "
            "Treatment: Spray neem oil. Release ladybugs."
        )
        assert "{" not in kwargs["input"]

    def test_request_uses_image_and_strict_schema(self):
        client = make_client(completion_content=json.dumps(PEST_JSON))
        self._run(client)
        kwargs = client.chat.completions.create.call_args.kwargs
        content = kwargs["messages"][0]["content"]
        assert content[0]["image_url"]["url"] == "data:image/jpeg;base64,aW1hZ2U="
        assert content[1] == {"type": "text", "text": "What pest?"}
        schema = kwargs["response_format"]["json_schema"]
        assert schema["strict"] is True
        assert set(schema["schema"]["required"]) == set(PEST_JSON)

    def test_same_voice_for_every_call(self):
        client = make_client(completion_content=json.dumps(PEST_JSON))
        self._run(client)
        assert client.audio.speech.create.call_args.kwargs["voice"] == ai_service.TTS_VOICE

    def test_not_configured(self):
        result = self._run(None)
        assert result.analysis is None
        assert result.audio_base64 is None


# =============================================================================
# Soil analysis
# =============================================================================
class TestAnalyzeSoil:
    def _run(self, client, template=SOIL_TEMPLATE):
        with patch("agri_assist.services.services.openai_client", client):
            return asyncio.run(ai_service.analyze_soil_by_image("aW1hZ2U=", "image/png", "Soil?", template))

    def test_success(self):
        client = make_client(completion_content=json.dumps(SOIL_JSON))
        result = self._run(client)
        assert result.analysis.soil_type == "Clay loam"
        assert result.analysis.nutrient_deficiencies == ["Nitrogen", "Zinc"]
        assert result.audio_base64 is not None
        assert client.audio.speech.create.call_args.kwargs["input"] == (
            "Soil is Clay loam with pH 6.5. Missing: Nitrogen. Zinc. Do: Add compost. Apply zinc sulfate."
        )

    def test_empty_response(self):
        client = make_client(completion_content="")
        result = self._run(client)
        assert result.analysis is None
        assert result.audio_base64 is None

    def test_audio_failure_keeps_analysis(self):
        client = make_client(completion_content=json.dumps(SOIL_JSON), audio_error=ConnectionError("down"))
        result = self._run(client)
        assert result.analysis.ph_level_estimate == "6.5"
        assert result.audio_base64 is None

    def test_schema_name_is_soil(self):
        client = make_client(completion_content=json.dumps(SOIL_JSON))
        self._run(client)
        schema = client.chat.completions.create.call_args.kwargs["response_format"]["json_schema"]
        assert schema["name"] == "soil_analysis"
        assert "ph_level_estimate" in schema["schema"]["required"]


# =============================================================================
# Daily summary
# =============================================================================
class TestDailySummary:
    def _run(self, client, template="Today: {text}"):
        with patch("agri_assist.services.services.openai_client", client):
            return asyncio.run(ai_service.get_daily_summary("Farm news for Chiang Mai", template))

    def test_audio_prompt_truncated_but_text_kept(self):
        long_text = "a" * 1200 + "b" * 300
        client = make_client(completion_content=long_text)
        result = self._run(client)
        assert result.summary.text == long_text
        spoken = client.audio.speech.create.call_args.kwargs["input"]
        assert spoken == "Today: " + "a" * 1000
        assert "b" not in spoken

    def test_sources_kept_in_order(self):
        annotations = [
            url_citation("https://weather.example/2", "Rain"),
            SimpleNamespace(type="file_citation"),
            url_citation("https://market.example/1", None),
        ]
        client = make_client(completion_content="Rain expected.", annotations=annotations)
        result = self._run(client)
        assert [s.url for s in result.summary.sources] == [
            "https://weather.example/2",
            "https://market.example/1",
        ]
        assert result.summary.sources[1].title == ""

    def test_search_is_enabled(self):
        client = make_client(completion_content="Sunny.")
        self._run(client)
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["web_search_options"] == {}
        assert kwargs["messages"] == [{"role": "user", "content": "Farm news for Chiang Mai"}]
        assert "response_format" not in kwargs

    def test_empty_text(self):
        client = make_client(completion_content="")
        result = self._run(client)
        assert result.summary is None
        assert result.audio_base64 is None

    def test_audio_failure_keeps_summary(self):
        client = make_client(completion_content="Sunny.", audio_error=RuntimeError("tts down"))
        result = self._run(client)
        assert result.summary.text == "Sunny."
        assert result.audio_base64 is None

    def test_provider_error(self):
        client = make_client(completion_error=TimeoutError())
        result = self._run(client)
        assert result.summary is None
        assert result.audio_base64 is None


# =============================================================================
# Agronomist chat
# =============================================================================
class TestAgronomistChat:
    def test_create_uses_low_temperature(self):
        client = make_client(completion_content="hi")
        with patch("agri_assist.services.services.openai_client", client):
            chat = ai_service.create_agronomist_chat("You are an agronomist.")
        assert isinstance(chat, AgronomistChat)
        assert chat.temperature == 0.2
        assert chat.system_instruction == "You are an agronomist."
        assert chat.client is client

    def test_send_message_keeps_history(self):
        client = make_client(completion_content="Use mulch.")
        chat = AgronomistChat(client, "You are an agronomist.")

        answer = asyncio.run(chat.send_message("How to keep soil moist?"))
        assert answer == "Use mulch."

        client.chat.completions.create.return_value = make_completion("Twice a week.")
        asyncio.run(chat.send_message("How often to water?"))

        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "You are an agronomist."}
        assert [m["role"] for m in messages[1:]] == ["user", "assistant", "user"]
        assert client.chat.completions.create.call_args.kwargs["temperature"] == 0.2
        assert len(chat.history) == 4

    def test_failed_turn_is_rolled_back(self):
        client = make_client(completion_error=RuntimeError("boom"))
        chat = AgronomistChat(client, "sys")
        with pytest.raises(RuntimeError):
            asyncio.run(chat.send_message("hello"))
        assert chat.history == []

    def test_create_without_api_key(self):
        with patch("agri_assist.services.services.openai_client", None):
            with pytest.raises(AIServiceNotConfiguredError):
                ai_service.create_agronomist_chat("You are an agronomist.")

    def test_cancelled_turn_is_rolled_back(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=asyncio.CancelledError())
        chat = AgronomistChat(client, "sys")
        with pytest.raises(asyncio.CancelledError):
            asyncio.run(chat.send_message("hello"))
        assert chat.history == []

    def test_stream_stopped_early_is_rolled_back(self):
        async def fake_stream():
            for text in ["Water ", "in the ", "morning."]:
                yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])

        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=fake_stream())
        chat = AgronomistChat(client, "sys")

        async def take_first_chunk():
            stream = chat.send_message_stream("When to water?")
            first = await stream.__anext__()
            await stream.aclose()
            return first

        assert asyncio.run(take_first_chunk()) == "Water "
        assert chat.history == []

    def test_stream_collects_reply(self):
        async def fake_stream():
            for text in ["Rotate ", None, "crops."]:
                yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])

        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=fake_stream())
        chat = AgronomistChat(client, "sys")

        async def consume():
            return [chunk async for chunk in chat.send_message_stream("Advice?")]

        chunks = asyncio.run(consume())
        assert chunks == ["Rotate ", "crops."]
        assert chat.history[-1] == {"role": "assistant", "content": "Rotate crops."}
        assert client.chat.completions.create.call_args.kwargs["stream"] is True
