from typing import List

from pydantic import BaseModel, ConfigDict, Field


class DetectResult(BaseModel):
    """
        Class represents the outcome of a detect function.
    """
    model_config = ConfigDict(frozen=True)

    passed: bool
    reason: str = ""


class ExecResult(BaseModel):
    """
        Class represents a finished command. Never persisted.
    """
    model_config = ConfigDict(frozen=True)

    command: List[str]
    stdout: str = ""
    stderr: str = ""
    combined: str = ""
    exit_code: int = 0
    duration: float = 0.0

    @property
    def command_line(self) -> str:
        return " ".join(self.command)

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class Process(BaseModel):
    """
        Class represents a launch process entry written to launch.toml.
    """
    type: str
    command: List[str] = Field(min_length=1)
    default: bool = False


# --- Detect helpers ---

def opt_in(reason: str = "") -> DetectResult:
    return DetectResult(passed=True, reason=reason)


def opt_out(reason: str) -> DetectResult:
    return DetectResult(passed=False, reason=reason)


def opt_in_always() -> DetectResult:
    return opt_in("always enabled")


def opt_in_env_set(name: str) -> DetectResult:
    return opt_in(f"{name} set")


def opt_out_env_not_set(name: str) -> DetectResult:
    return opt_out(f"{name} not set")


def opt_in_file_found(name: str) -> DetectResult:
    return opt_in(f"found {name}")


def opt_out_file_not_found(name: str) -> DetectResult:
    return opt_out(f"{name} not found")
