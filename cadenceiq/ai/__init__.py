"""AI package - social profile insights.

Modules:
    - claude_client: Lazy Anthropic client mixin
    - insights: Insight source interface and Claude implementation
"""
