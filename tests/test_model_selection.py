from __future__ import annotations

from pathlib import Path

import pytest

from conftest import scripted_input
from llama_switch.app.model_selection import (
    HardwareInfo,
    choose,
    format_artifact_line,
    get_hardware_info,
    parse_choice,
    render_catalog,
    resolve_selection,
)
from llama_switch.errors import InvalidSelectionError
from llama_switch.interfaces.model.artifact import ModelArtifact


def _catalog(n: int) -> list[ModelArtifact]:
    return [
        ModelArtifact(path=Path(f"/models/m{i}.gguf"), modified_at=1_700_000_000 - i, size_bytes=1024 ** 3)
        for i in range(1, n + 1)
    ]


@pytest.mark.parametrize("raw", ["1", "2", "3", " 2 ", "03"])
def test_parse_choice_in_range(raw):
    assert parse_choice(raw, 3) == int(raw.strip())


@pytest.mark.parametrize("raw", ["0", "4", "-1", "", "abc", "1.5", "+1", "1 2", "٣"])
def test_parse_choice_rejects(raw):
    assert parse_choice(raw, 3) is None


def test_choose_valid_first_try():
    inp = scripted_input("2")
    out: list[str] = []

    assert choose(_catalog(3), input_fn=inp, out=out.append) == 2
    assert inp.prompts == ["Select model number (1-3): "]
    assert out == []


def test_choose_reprompts_until_valid():
    inp = scripted_input("0", "x", "", "99", "-3", "3")
    out: list[str] = []

    assert choose(_catalog(3), input_fn=inp, out=out.append) == 3
    assert len(inp.prompts) == 6
    assert out == ["Invalid selection. Please enter a number between 1 and 3"] * 5


def test_choose_never_returns_out_of_range_index():
    # Only invalid input: the loop keeps asking until the input source gives out
    inp = scripted_input(*[str(i) for i in (0, 5, 6, 100, -1)])
    with pytest.raises(EOFError):
        choose(_catalog(4), input_fn=inp, out=lambda _: None)
    assert len(inp.prompts) == 6


def test_choose_interrupt_propagates():
    def _interrupt(prompt):
        raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        choose(_catalog(2), input_fn=_interrupt, out=lambda _: None)


def test_choose_empty_catalog():
    with pytest.raises(ValueError):
        choose([], input_fn=scripted_input("1"))


def test_resolve_selection_by_index_and_name():
    catalog = _catalog(3)
    assert resolve_selection(catalog, "2") == 2
    assert resolve_selection(catalog, "m3.gguf") == 3


def test_resolve_selection_unknown():
    with pytest.raises(InvalidSelectionError):
        resolve_selection(_catalog(2), "7")
    with pytest.raises(InvalidSelectionError):
        resolve_selection(_catalog(2), "missing.gguf")


def test_format_line_markers():
    artifact = _catalog(1)[0]
    hw = HardwareInfo(total_ram_gb=0.5, available_ram_gb=0.1, cpu_count=2)

    line = format_artifact_line(1, artifact, active_path="/models/m1.gguf", hw=hw)

    first, second = line.split("\n")
    assert first == "1. m1.gguf (Active) (Exceeds RAM)"
    assert second.startswith("   Modified: ")
    assert second.endswith("| 1.00 GB")


def test_format_line_plain():
    artifact = _catalog(1)[0]
    hw = HardwareInfo(total_ram_gb=64, available_ram_gb=32, cpu_count=8)

    first = format_artifact_line(4, artifact, active_path="/models/other.gguf", hw=hw).split("\n")[0]

    assert first == "4. m1.gguf"


def test_render_catalog_numbers_from_one():
    out: list[str] = []
    render_catalog(_catalog(2), out=out.append)

    text = "\n".join(out)
    assert text.startswith("Available models (newest to oldest):")
    assert "1. m1.gguf" in text
    assert "2. m2.gguf" in text


def test_hardware_info_summary():
    hw = get_hardware_info()
    assert hw.total_ram_gb > 0
    assert hw.cpu_count >= 1
    assert hw.summary.startswith("RAM: ")
