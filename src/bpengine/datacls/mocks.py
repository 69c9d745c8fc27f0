from pydantic import BaseModel, ConfigDict


class MockProcess(BaseModel):
    """
        Class describes the scripted outcome of a mocked command.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
