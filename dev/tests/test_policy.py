import logging

import pytest

from nsp_patcher.exceptions import ConfigurationError, ExternalToolError
from nsp_patcher.patching.policy import (
    ProgramSelection,
    Severity,
    Stage,
    StagePolicy,
    selection_from_config,
)


def test_default_policy_only_tolerates_keys_and_convert() -> None:
    policy = StagePolicy()
    non_fatal = {stage for stage in Stage if not policy.is_fatal(stage)}
    assert non_fatal == {Stage.DERIVE_TITLE_KEYS, Stage.CONVERT}


def test_policy_from_config_overrides() -> None:
    policy = StagePolicy.from_config({"patching": {"stage_severity": {"convert": "fatal", "pack_meta": "warn"}}})

    assert policy.severity(Stage.CONVERT) is Severity.FATAL
    assert policy.severity(Stage.PACK_META) is Severity.WARN
    assert policy.severity(Stage.EXTRACT) is Severity.FATAL


def test_policy_from_config_rejects_unknown_stage() -> None:
    with pytest.raises(ConfigurationError):
        StagePolicy.from_config({"patching": {"stage_severity": {"unpack": "warn"}}})


def test_handle_raises_for_fatal_stage() -> None:
    err = ExternalToolError("boom", tool="hacpack", exit_code=1)
    with pytest.raises(ExternalToolError):
        StagePolicy().handle(Stage.PACK_PROGRAM, err)


def test_handle_logs_for_warn_stage(caplog) -> None:
    err = ExternalToolError("convert failed", tool="hactool", exit_code=1)
    with caplog.at_level(logging.WARNING):
        StagePolicy().handle(Stage.CONVERT, err)
    assert "convert failed" in caplog.text


def test_selection_from_config() -> None:
    assert selection_from_config({}) is ProgramSelection.SMALLEST_FIRST
    assert selection_from_config({"patching": {"base_program_selection": "largest"}}) is ProgramSelection.LARGEST
    with pytest.raises(ConfigurationError):
        selection_from_config({"patching": {"base_program_selection": "random"}})
