from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _BaseConfigModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class ExternalToolConfig(_BaseConfigModel):
    exe_path: Optional[str] = None


class ExternalToolsConfig(_BaseConfigModel):
    hactool: ExternalToolConfig = Field(default_factory=ExternalToolConfig)
    hacpack: ExternalToolConfig = Field(default_factory=ExternalToolConfig)


class PatchingConfig(_BaseConfigModel):
    output_dir: Optional[str] = None
    temp_dir: Optional[str] = None
    title_keys_path: Optional[str] = None
    keyset_path: Optional[str] = None
    base_program_selection: str = "smallest_first"
    stage_severity: Dict[str, str] = Field(default_factory=dict)

    @field_validator("base_program_selection")
    @classmethod
    def _check_selection(cls, value: str) -> str:
        value = str(value or "").strip().lower()
        if value not in ("smallest_first", "largest"):
            raise ValueError("base_program_selection must be 'smallest_first' or 'largest'")
        return value

    @field_validator("stage_severity")
    @classmethod
    def _check_severity(cls, value: Dict[str, str]) -> Dict[str, str]:
        normalized = {}
        for stage, severity in (value or {}).items():
            sev = str(severity or "").strip().lower()
            if sev not in ("fatal", "warn"):
                raise ValueError(f"stage '{stage}' severity must be 'fatal' or 'warn'")
            normalized[str(stage).strip().lower()] = sev
        return normalized


class LoggingConfig(_BaseConfigModel):
    level: str = "INFO"
    log_dir: Optional[str] = None
    file_logging: bool = False
    structured_json: Optional[bool] = None


class AppConfigModel(_BaseConfigModel):
    external_tools: ExternalToolsConfig = Field(default_factory=ExternalToolsConfig)
    patching: PatchingConfig = Field(default_factory=PatchingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
