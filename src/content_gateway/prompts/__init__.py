from .compiler import PROMPT_BUILDERS, PromptContext, compile_prompt, has_prompt

__all__ = ["PROMPT_BUILDERS", "PromptContext", "compile_prompt", "has_prompt"]
