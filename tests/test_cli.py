import json
import pathlib

from babeljson.cli import derive_output_path, main, sanitise_language_for_filename


def write_source(tmp_path, data):
    source = tmp_path / "en.json"
    source.write_text(json.dumps(data), encoding="utf-8")
    return source


def test_echo_run_writes_derived_output(tmp_path, capsys):
    source = write_source(tmp_path, {"title": "Hello <b>{name}</b>", "n": 5})

    exit_code = main([str(source), "-p", "echo", "-t", "fr-FR", "--batch-delay", "0"])

    output = tmp_path / "en_fr-FR.json"
    assert exit_code == 0
    assert json.loads(output.read_text(encoding="utf-8")) == {"title": "Hello <b>{name}</b>", "n": 5}
    assert "Done" in capsys.readouterr().out


def test_protect_flag_reaches_tokenizer(tmp_path, scripted):
    source = write_source(tmp_path, {"x": "Acme Corp says hi"})
    output = tmp_path / "out.json"

    exit_code = main(
        [str(source), "-o", str(output), "--protect", "Acme, Acme", "--batch-delay", "0"],
        provider=scripted(transform=str.upper),
    )

    assert exit_code == 0
    assert json.loads(output.read_text(encoding="utf-8")) == {"x": "Acme CORP SAYS HI"}


def test_document_without_strings_is_copied(tmp_path, capsys):
    source = write_source(tmp_path, {"a": [1, 2, None]})
    output = tmp_path / "out.json"

    exit_code = main([str(source), "-o", str(output), "-p", "echo"])

    assert exit_code == 0
    assert json.loads(output.read_text(encoding="utf-8")) == {"a": [1, 2, None]}
    assert "No strings found to translate." in capsys.readouterr().out


def test_refuses_to_overwrite_existing_output(tmp_path):
    source = write_source(tmp_path, {"a": "b"})
    output = tmp_path / "out.json"
    output.write_text("{}", encoding="utf-8")

    assert main([str(source), "-o", str(output), "-p", "echo"]) == 1
    assert output.read_text(encoding="utf-8") == "{}"
    assert main([str(source), "-o", str(output), "-p", "echo", "-f"]) == 0


def test_invalid_json_fails_without_output(tmp_path, capsys):
    source = tmp_path / "en.json"
    source.write_text('{"a": ', encoding="utf-8")
    output = tmp_path / "out.json"

    assert main([str(source), "-o", str(output), "-p", "echo"]) == 1
    assert not output.exists()
    assert "FAILED" in capsys.readouterr().err


def test_service_failure_aborts_without_output(tmp_path, scripted):
    source = write_source(tmp_path, {"a": "one", "b": "two"})
    output = tmp_path / "out.json"
    provider = scripted(transform=lambda s: s)
    provider.translate = lambda texts, **kwargs: ["only one"]

    exit_code = main(
        [str(source), "-o", str(output), "--max-retries", "2", "--retry-delay", "0"],
        provider=provider,
    )

    assert exit_code == 1
    assert not output.exists()


def test_missing_api_key_is_a_configuration_error(tmp_path):
    source = write_source(tmp_path, {"a": "b"})

    assert main([str(source), "-o", str(tmp_path / "out.json")]) == 2
    assert not (tmp_path / "out.json").exists()


def test_invalid_batch_size_is_a_configuration_error(tmp_path):
    source = write_source(tmp_path, {"a": "b"})

    assert main([str(source), "-p", "echo", "-b", "0"]) == 2


def test_settings_supply_defaults(tmp_path, monkeypatch, scripted):
    monkeypatch.setenv("BABELJSON_PROTECTED_TERMS", "Acme")
    source = write_source(tmp_path, {"x": "Acme rocks"})
    output = tmp_path / "out.json"

    exit_code = main(
        [str(source), "-o", str(output), "--batch-delay", "0"],
        provider=scripted(transform=str.upper),
    )

    assert exit_code == 0
    assert json.loads(output.read_text(encoding="utf-8")) == {"x": "Acme ROCKS"}


def test_output_name_helpers():
    assert sanitise_language_for_filename(" pt BR ") == "pt-BR"
    assert sanitise_language_for_filename("日本語") == "translated"
    assert derive_output_path(pathlib.Path("/tmp/en.json"), "de-DE") == pathlib.Path("/tmp/en_de-DE.json")


def test_numbers_are_written_as_in_the_source(tmp_path):
    source = tmp_path / "en.json"
    source.write_text('{"a": 1e5, "b": 1.10, "c": "x", "d": 1e400}', encoding="utf-8")
    output = tmp_path / "out.json"

    assert main([str(source), "-o", str(output), "-p", "echo", "--batch-delay", "0"]) == 0
    assert output.read_text(encoding="utf-8") == (
        '{\n  "a": 1e5,\n  "b": 1.10,\n  "c": "x",\n  "d": 1e400\n}'
    )


def test_deeply_nested_input_fails_cleanly(tmp_path, capsys):
    source = tmp_path / "en.json"
    source.write_text("[" * 5000 + '"x"' + "]" * 5000, encoding="utf-8")
    output = tmp_path / "out.json"

    assert main([str(source), "-o", str(output), "-p", "echo"]) == 1
    assert not output.exists()
    assert "FAILED" in capsys.readouterr().err


def test_failed_run_creates_no_output_directory(tmp_path):
    source = tmp_path / "en.json"
    source.write_text('{"a": ', encoding="utf-8")
    output = tmp_path / "new" / "out.json"

    assert main([str(source), "-o", str(output), "-p", "echo"]) == 1
    assert not (tmp_path / "new").exists()


def test_successful_run_creates_output_directory(tmp_path):
    source = write_source(tmp_path, {"a": "b"})
    output = tmp_path / "new" / "out.json"

    assert main([str(source), "-o", str(output), "-p", "echo"]) == 0
    assert json.loads(output.read_text(encoding="utf-8")) == {"a": "b"}
