from fastapi import HTTPException
from typing import Dict, List, Optional, Union


class APIError(HTTPException):
    """HTTP error rendered in the response envelope.

    ``detail`` always holds the list of human-readable messages.
    """

    def __init__(
        self,
        status_code: int,
        messages: Union[str, List[str]],
        headers: Optional[Dict[str, str]] = None,
    ):
        if isinstance(messages, str):
            messages = [messages]
        super().__init__(status_code=status_code, detail=list(messages), headers=headers)