import json
from datetime import datetime
from pathlib import Path

from wx_autoreply.config.loader import ConfigWatcher, load_config, save_config
from wx_autoreply.config.schema import Config, ReplyConfig
from wx_autoreply.utils.helpers import get_data_path


def test_defaults():
    config = Config()

    assert config.reply.enabled is False
    assert (config.reply.min_delay_seconds, config.reply.max_delay_seconds) == (2, 6)
    assert config.reply.max_daily_replies == 100
    assert config.reply.max_per_minute == 3
    assert (config.reply.work_hour_start, config.reply.work_hour_end) == (8, 23)
    assert config.reply.default_reply == "在的"
    assert config.model.context_length == 2048
    assert config.model.max_tokens == 256
    assert config.model.temperature == 0.7
    assert config.intake.source_package == "com.tencent.mm"


def test_data_dir_follows_env(tmp_path: Path):
    assert get_data_path() == tmp_path / "data"
    assert Config().workspace_path == tmp_path / "data" / "workspace"


def test_load_camel_case_file(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"reply": {"enabled": True, "maxPerMinute": 5, "workHourStart": 22}}),
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.reply.enabled is True
    assert config.reply.max_per_minute == 5
    assert config.reply.work_hour_start == 22


def test_invalid_file_falls_back_to_defaults(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text("{broken", encoding="utf-8")
    assert load_config(path).reply.enabled is False

    path.write_text(json.dumps({"reply": {"workHourEnd": 30}}), encoding="utf-8")
    assert load_config(path).reply.work_hour_end == 23


def test_save_round_trip_uses_camel_case(tmp_path: Path):
    path = tmp_path / "nested" / "config.json"
    config = Config()
    config.reply.sensitive_words = "密码"
    save_config(config, path)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["reply"]["sensitiveWords"] == "密码"
    assert load_config(path).reply.sensitive_words == "密码"


def test_env_overrides_nested_fields(monkeypatch):
    monkeypatch.setenv("WX_AUTOREPLY_REPLY__MAX_PER_MINUTE", "9")
    assert Config().reply.max_per_minute == 9


def test_work_hours_window():
    day = ReplyConfig(work_hour_start=8, work_hour_end=23)
    assert day.is_within_work_hours(datetime(2026, 1, 1, 8, 0))
    assert day.is_within_work_hours(datetime(2026, 1, 1, 23, 59))
    assert not day.is_within_work_hours(datetime(2026, 1, 1, 7, 59))

    night = ReplyConfig(work_hour_start=22, work_hour_end=6)
    assert night.is_within_work_hours(datetime(2026, 1, 1, 23, 0))
    assert night.is_within_work_hours(datetime(2026, 1, 1, 3, 0))
    assert not night.is_within_work_hours(datetime(2026, 1, 1, 12, 0))


def test_sensitive_word_list():
    config = ReplyConfig(sensitive_words=" 转账, ,密码,")

    assert config.sensitive_word_list() == ["转账", "密码"]
    assert config.contains_sensitive_word("我忘了密码")
    assert not config.contains_sensitive_word("你好")
    assert not ReplyConfig(sensitive_words="").contains_sensitive_word("密码")


def test_watcher_reloads_only_after_change(tmp_path: Path):
    path = tmp_path / "config.json"
    save_config(Config(), path)
    watcher = ConfigWatcher(path)

    assert watcher.poll() is None

    config = load_config(path)
    config.reply.enabled = True
    save_config(config, path)

    fresh = watcher.poll()
    assert fresh is not None and fresh.reply.enabled is True
    assert watcher.poll() is None


def test_watcher_handles_missing_file(tmp_path: Path):
    path = tmp_path / "config.json"
    watcher = ConfigWatcher(path)
    assert watcher.poll() is None

    save_config(Config(), path)
    assert watcher.poll() is not None

    path.unlink()
    assert watcher.poll().reply.enabled is False
