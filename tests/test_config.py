from parlour.config import ServerAddress, load_config


def test_missing_file_gives_defaults(tmp_path):
    assert load_config(tmp_path / "absent.ini") == ServerAddress("127.0.0.1", 12345)


def test_reads_host_and_port(tmp_path):
    cfg = tmp_path / "config.ini"
    cfg.write_text("host= example.org \nport=4000\n", encoding="utf-8")
    address = load_config(cfg)
    assert address.host == "example.org"
    assert address.port == 4000


def test_other_lines_are_ignored_and_whitespace_trimmed(tmp_path):
    cfg = tmp_path / "config.ini"
    cfg.write_text("# comment\n   host=chat.local\nmode=fast\n", encoding="utf-8")
    address = load_config(cfg)
    assert address.host == "chat.local"
    assert address.port == 12345


def test_last_value_wins(tmp_path):
    cfg = tmp_path / "config.ini"
    cfg.write_text("port=1000\nport=2000\n", encoding="utf-8")
    assert load_config(cfg).port == 2000


def test_non_numeric_port_becomes_zero(tmp_path):
    cfg = tmp_path / "config.ini"
    cfg.write_text("port=abc\n", encoding="utf-8")
    assert load_config(cfg).port == 0