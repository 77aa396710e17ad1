import asyncio
from pathlib import Path

from fakes import FakeModelFactory

from wx_autoreply.config.schema import Config, ModelConfig
from wx_autoreply.engine.client import LocalReplyClient
from wx_autoreply.engine.llama import InferenceEngine
from wx_autoreply.engine.models import find_model
from wx_autoreply.storage.models import ChatTurn


def _client(tmp_path: Path, *, with_model: bool = True, **llama_kwargs) -> tuple[LocalReplyClient, FakeModelFactory]:
    config = Config(model=ModelConfig(models_dir=str(tmp_path / "models")))
    if with_model:
        info = find_model(config.model.selected_model_id)
        (tmp_path / "models").mkdir(parents=True, exist_ok=True)
        (tmp_path / "models" / info.file_name).write_bytes(b"GGUF")
    factory = FakeModelFactory(**llama_kwargs)
    return LocalReplyClient(config, engine=InferenceEngine(model_factory=factory)), factory


def test_generate_reply_loads_model_lazily_and_cleans(tmp_path: Path):
    client, factory = _client(tmp_path, script=[9])
    assert client.is_ready() is False

    reply = asyncio.run(client.generate_reply("Bob", "casual", [], "see you?"))

    assert reply == "OK, see you"
    assert client.is_ready() is True
    kwargs = factory.created[0].kwargs
    assert kwargs["n_ctx"] == 2048
    assert kwargs["n_threads"] == 4
    assert factory.created[0].sample_kwargs[0]["temp"] == 0.7


def test_generate_reply_uses_default_when_model_missing(tmp_path: Path):
    client, factory = _client(tmp_path, with_model=False, script=[1])

    reply = asyncio.run(client.generate_reply("Bob", "casual", [], "hi"))

    assert reply == "在的"
    assert factory.created == []


def test_generate_reply_uses_default_for_empty_output(tmp_path: Path):
    client, _ = _client(tmp_path, script=[4])

    reply = asyncio.run(client.generate_reply("Bob", "casual", [], "hi"))

    assert reply == "在的"


def test_generate_reply_uses_default_when_prefill_fails(tmp_path: Path):
    client, _ = _client(tmp_path, script=[1], fail_eval_on=1)

    reply = asyncio.run(client.generate_reply("Bob", "casual", [], "hi"))

    assert reply == "在的"


def test_history_reaches_prompt(tmp_path: Path, monkeypatch):
    client, _ = _client(tmp_path, script=[1])
    prompts: list[str] = []
    original = client.engine.generate

    def _capture(prompt, max_tokens, temperature):
        prompts.append(prompt)
        return original(prompt, max_tokens, temperature)

    monkeypatch.setattr(client.engine, "generate", _capture)
    history = [ChatTurn(role="user", content="earlier question", timestamp=1)]

    reply = asyncio.run(client.generate_reply("Bob", "casual", history, "hi"))

    assert reply == "Hi"
    assert "earlier question" in prompts[0]


def test_initialize_is_idempotent_and_release_unloads(tmp_path: Path):
    client, factory = _client(tmp_path, script=[1])

    async def _run():
        assert await client.initialize() is True
        assert await client.initialize() is True
        await client.release()

    asyncio.run(_run())

    assert len(factory.created) == 1
    assert factory.created[0].closed is True
    assert client.is_ready() is False


def test_wait_until_ready_picks_up_model_downloaded_later(tmp_path: Path, monkeypatch):
    client, factory = _client(tmp_path, with_model=False, script=[1])
    info = find_model(client.config.model.selected_model_id)
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)
        if len(sleeps) == 2:
            (tmp_path / "models" / info.file_name).write_bytes(b"GGUF")

    monkeypatch.setattr("wx_autoreply.engine.client.asyncio.sleep", fake_sleep)

    asyncio.run(client.wait_until_ready(interval=5.0))

    assert sleeps == [5.0, 5.0]
    assert client.is_ready() is True
    assert len(factory.created) == 1
