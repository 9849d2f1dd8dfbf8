"""The fixed review prompt sent with every commit diff."""

from __future__ import annotations

DIFF_PLACEHOLDER = "{diff}"

# The "Issue counts" line format is what message.py parses for severity.
# Changing it here without changing ISSUE_COUNT_RE there silently downgrades
# every notification to LOW.
DEFAULT_PROMPT_TEMPLATE = """You are a senior software engineer reviewing a commit.
Find problems in the change below and suggest concrete improvements.

Code change (unified diff):
{diff}

Review dimensions (grade every issue High / Medium / Low):
1. Correctness: logic errors, boundary conditions, error handling
2. Security: vulnerabilities, resource management, leaked secrets
3. Performance: bottlenecks, scalability
4. Maintainability: naming, structure, comments, conventions
5. Testability: dependencies, how hard the code is to mock

Output format:
## Code Review Report
### 1. Summary
* **Overall assessment:** (code quality and the main problems)
* **Issue counts:** High(x) Medium(y) Low(z)
### 2. Issues
**[Severity]** - **[Category]**: title
* **Location:** `file:line`
* **Problem:** description
* **Suggestion:** how to fix it
### 3. Strengths
(what the change does well)
### 4. Next steps
1. Must fix: High issues
2. Should improve: Medium issues
3. Consider: Low issues"""


def build_prompt(diff_text: str, template: str = DEFAULT_PROMPT_TEMPLATE, max_diff_chars: int | None = None) -> str:
    """Substitute the diff into the template.

    Plain replacement rather than str.format: diffs routinely contain braces.
    """
    if not diff_text or not diff_text.strip():
        raise ValueError("diff_text must not be empty")
    if max_diff_chars and len(diff_text) > max_diff_chars:
        diff_text = diff_text[:max_diff_chars] + "\n... [diff truncated]"
    return template.replace(DIFF_PLACEHOLDER, diff_text)
