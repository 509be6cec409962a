"""
Assistant: query routing across LLM providers, chat history and action steps.

Import from the submodules directly (sophera.assistant.router, ...); the hope
package depends on sophera.assistant.types, so this package stays import-light.
"""
