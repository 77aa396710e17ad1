from pathlib import Path

import httpx

from wx_autoreply.engine.models import AVAILABLE_MODELS, ModelInfo, ModelStore, find_model, format_size


def _info(size: int = 10) -> ModelInfo:
    return ModelInfo(
        id="tiny",
        name="Tiny",
        description="test model",
        file_name="tiny.gguf",
        download_url="https://models.example/tiny.gguf",
        size_bytes=size,
    )


def test_download_streams_into_place(tmp_path: Path):
    body = b"x" * 10

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url == "https://models.example/tiny.gguf"
        return httpx.Response(200, content=body, headers={"content-length": str(len(body))})

    store = ModelStore(tmp_path / "models")
    progress: list[tuple[int, int]] = []
    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        ok = store.download(_info(), on_progress=lambda done, total: progress.append((done, total)), client=client, chunk_size=4)

    assert ok is True
    assert (tmp_path / "models" / "tiny.gguf").read_bytes() == body
    assert not (tmp_path / "models" / "tiny.gguf.tmp").exists()
    assert progress[-1] == (10, 10)
    assert store.is_downloaded(_info())
    assert store.model_path(_info()) == str((tmp_path / "models" / "tiny.gguf").resolve())


def test_failed_download_leaves_no_partial_file(tmp_path: Path):
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    store = ModelStore(tmp_path / "models")

    with httpx.Client(transport=transport) as client:
        assert store.download(_info(), client=client) is False

    assert list((tmp_path / "models").iterdir()) == []
    assert store.model_path(_info()) is None


def test_size_tolerance_and_delete(tmp_path: Path):
    store = ModelStore(tmp_path)
    (tmp_path / "tiny.gguf").write_bytes(b"x" * 9)

    assert store.is_downloaded(_info(size=10)) is False
    assert store.model_path(_info(size=10)) is not None
    assert store.used_bytes() == 9

    assert store.delete(_info()) is True
    assert store.delete(_info()) is True
    assert store.model_path(_info()) is None


def test_catalog_lookup_and_path_by_id(tmp_path: Path):
    store = ModelStore(tmp_path)
    default = find_model("qwen2.5-1.5b-q4")

    assert default in AVAILABLE_MODELS
    assert find_model("missing") is None
    assert store.path_by_id("missing") is None
    assert store.path_by_id(default.id) is None
    assert store.downloaded_models() == []


def test_format_size():
    assert format_size(512) == "512 B"
    assert format_size(2048) == "2 KB"
    assert format_size(5 * 1024 * 1024) == "5 MB"
    assert format_size(3 * 1024 * 1024 * 1024) == "3.0 GB"
