from __future__ import annotations

from pydantic import BaseModel


class LoginRequest(BaseModel):
    username: str | None = None
    password: str | None = None

    def credentials(self) -> tuple[str, str]:
        return (self.username or "").strip(), self.password or ""
