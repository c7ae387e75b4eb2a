import asyncio
import json
import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

import product_generation.gemini_client as gemini_client
from frame_extraction import EncodedImage
from product_generation import GeminiGateway, GenerationError


FRAME = EncodedImage(b"\xff\xd8frame")


def _client(generate=None, chat_reply=None):
    client = MagicMock()
    client.aio.models.generate_content = generate or AsyncMock()
    session = MagicMock()
    session.send_message = AsyncMock(return_value=chat_reply)
    client.aio.chats.create.return_value = session
    return client


def _text_response(text):
    return SimpleNamespace(text=text, prompt_feedback=None, candidates=[])


def _image_response(data=b"png-bytes", mime_type="image/png"):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type))
    return SimpleNamespace(prompt_feedback=None, candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


def _empty_response():
    return SimpleNamespace(prompt_feedback=None, candidates=[], response_id="r1")


def test_gateway_requires_key_or_client():
    with pytest.raises(GenerationError):
        GeminiGateway(None)


def test_from_env_without_key_fails(monkeypatch, tmp_path):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(gemini_client, "_load_env_key", lambda: None)

    with pytest.raises(GenerationError):
        GeminiGateway.from_env()


def test_load_env_key_does_not_override(monkeypatch, tmp_path):
    (tmp_path / ".env").write_text("# comment\nGEMINI_API_KEY='from-file'\nVIDSTORE_EXTRA=1\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    # Recorded as unset so monkeypatch removes whatever the loader writes.
    monkeypatch.setenv("VIDSTORE_EXTRA", "placeholder")
    monkeypatch.delenv("VIDSTORE_EXTRA")

    gemini_client._load_env_key()

    assert os.environ["GEMINI_API_KEY"] == "from-env"
    assert os.environ["VIDSTORE_EXTRA"] == "1"


def test_describe_products_parses_json_reply():
    payload = {"products": [{"title": "Lamp", "description": "Bright.", "price": 1200}]}
    generate = AsyncMock(return_value=_text_response(json.dumps(payload)))
    gateway = GeminiGateway(client=_client(generate), text_model="text-model")

    products = asyncio.run(gateway.describe_products(FRAME))

    assert [p.title for p in products] == ["Lamp"]
    assert products[0].image == FRAME
    kwargs = generate.call_args.kwargs
    assert kwargs["model"] == "text-model"
    assert kwargs["config"].response_mime_type == "application/json"


def test_describe_products_wraps_sdk_errors():
    gateway = GeminiGateway(client=_client(AsyncMock(side_effect=RuntimeError("503 unavailable"))))

    with pytest.raises(GenerationError, match="503"):
        asyncio.run(gateway.describe_products(FRAME))


def test_describe_products_blocked_prompt():
    response = SimpleNamespace(text="", prompt_feedback=SimpleNamespace(block_reason="SAFETY"), candidates=[])
    gateway = GeminiGateway(client=_client(AsyncMock(return_value=response)))

    with pytest.raises(GenerationError, match="blocked"):
        asyncio.run(gateway.describe_products(FRAME))


def test_synthesize_image_returns_inline_image():
    generate = AsyncMock(return_value=_image_response())
    gateway = GeminiGateway(client=_client(generate), image_model="image-model")

    image = asyncio.run(gateway.synthesize_image("studio photo of a lamp"))

    assert image == EncodedImage(b"png-bytes", "image/png")
    assert generate.call_args.kwargs["contents"] == ["studio photo of a lamp"]
    assert generate.call_args.kwargs["model"] == "image-model"


def test_synthesize_image_retries_when_no_image(monkeypatch):
    monkeypatch.setattr(gemini_client, "RETRY_DELAY_S", 0)
    generate = AsyncMock(side_effect=[_empty_response(), _image_response(b"second")])
    gateway = GeminiGateway(client=_client(generate))

    image = asyncio.run(gateway.synthesize_image("prompt"))

    assert image.data == b"second"
    assert generate.await_count == 2


def test_synthesize_image_gives_up_after_max_retries(monkeypatch):
    monkeypatch.setattr(gemini_client, "RETRY_DELAY_S", 0)
    generate = AsyncMock(return_value=_empty_response())
    gateway = GeminiGateway(client=_client(generate))

    with pytest.raises(GenerationError, match="no image"):
        asyncio.run(gateway.synthesize_image("prompt"))

    assert generate.await_count == gemini_client.MAX_RETRIES


def test_edit_image_sends_current_image_and_instruction():
    generate = AsyncMock(return_value=_image_response(b"edited"))
    gateway = GeminiGateway(client=_client(generate))

    image = asyncio.run(gateway.edit_image(FRAME, "make the background white"))

    assert image.data == b"edited"
    contents = generate.call_args.kwargs["contents"]
    assert contents[0].inline_data.data == FRAME.data
    assert "make the background white" in contents[1]


def test_edit_image_rejects_blank_instruction():
    gateway = GeminiGateway(client=_client())

    with pytest.raises(GenerationError):
        asyncio.run(gateway.edit_image(FRAME, "   "))


def test_chat_session_round_trip():
    client = _client(chat_reply=SimpleNamespace(text="Try Instagram reels."))
    gateway = GeminiGateway(client=client, chat_model="chat-model")

    handle = gateway.open_chat_session("be nice")
    reply = asyncio.run(gateway.send_chat_message(handle, "How do I market this?"))

    assert reply == "Try Instagram reels."
    assert client.aio.chats.create.call_args.kwargs["model"] == "chat-model"
    handle.session.send_message.assert_awaited_once_with("How do I market this?")


def test_chat_failure_is_generation_error():
    client = _client()
    client.aio.chats.create.return_value.send_message = AsyncMock(side_effect=ConnectionError("offline"))
    gateway = GeminiGateway(client=client)

    with pytest.raises(GenerationError):
        asyncio.run(gateway.send_chat_message(gateway.open_chat_session(), "hi"))
