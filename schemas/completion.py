from pydantic import BaseModel


class CompletionResult(BaseModel):
    filled: int
    total: int
    percentage: int
