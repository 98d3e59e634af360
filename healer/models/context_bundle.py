"""
Context Bundle Model
====================
Ordered, token-budgeted text sections handed to the generative model.

Invariant:
    Sections are appended only while the running estimate of the rendered
    text (section header included) stays within budget. The first section
    that would exceed it closes the bundle; nothing is appended afterwards
    and no section is ever truncated here.
"""
import math
from typing import List
from pydantic import BaseModel

# 1 token ~= 4 characters
CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Rough token estimate used for budgeting."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def render_section(label: str, text: str) -> str:
    return f"\n=== {label} ===\n{text}\n"


class ContextSection(BaseModel):
    label: str
    text: str
    tokens: int = 0

    def render(self) -> str:
        return render_section(self.label, self.text)


class ContextBundle(BaseModel):
    budget: int = 4000
    sections: List[ContextSection] = []
    token_estimate: int = 0
    closed: bool = False

    def try_add(self, label: str, text: str) -> bool:
        """
        Append a section if its rendered form fits in the remaining budget.

        Returns False (and closes the bundle) when it does not fit, or
        when the bundle was already closed by an earlier section.
        """
        if self.closed:
            return False
        tokens = estimate_tokens(render_section(label, text))
        if self.token_estimate + tokens > self.budget:
            self.closed = True
            return False
        self.sections.append(ContextSection(label=label, text=text, tokens=tokens))
        self.token_estimate += tokens
        return True

    def render(self) -> str:
        return "".join(s.render() for s in self.sections)
