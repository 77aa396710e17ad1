import pytest


@pytest.fixture(autouse=True)
def _isolated_data_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("WX_AUTOREPLY_DATA_DIR", str(tmp_path / "data"))
