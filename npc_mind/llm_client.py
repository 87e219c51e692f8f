"""
Local language model client backed by llama-cpp-python.

Requests run on a single worker thread and are returned as futures, so
the controller's tick never blocks on generation. Any failure inside a
request surfaces as RemoteCallFailure on the future.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from .errors import RemoteCallFailure
from .logging_config import log_extra
from .prompting import PromptTemplate, default_template_for_model, render, stop_tokens_for_template
from .types import ModelReply, ToolInvocation

logger = logging.getLogger(__name__)

_LLAMA_AVAILABLE = False
try:
    from llama_cpp import Llama
    _LLAMA_AVAILABLE = True
except ImportError:
    pass


def is_llama_available() -> bool:
    """Check if llama-cpp-python is installed."""
    return _LLAMA_AVAILABLE


class LlamaCppClient:
    """
    LanguageModelClient over a local GGUF model.

    Example:
        >>> client = LlamaCppClient("models/phi-3-mini.gguf")
        >>> client.send_reasoning("What is around me?").result()
    """

    def __init__(
        self,
        model_path: str,
        template: Optional[PromptTemplate] = None,
        n_ctx: int = 4096,
        n_threads: Optional[int] = None,
        n_gpu_layers: int = 0,
        max_tokens: int = 160,
        temperature: float = 0.7,
        chat_format: Optional[str] = "chatml-function-calling",
        verbose: bool = False,
    ):
        """
        Args:
            model_path: Path to a GGUF model file
            template: Prompt template for plain reasoning (guessed from the path)
            n_ctx: Context window
            n_threads: CPU threads (None = library default)
            n_gpu_layers: Layers to offload to GPU
            max_tokens: Generation limit per request
            temperature: Sampling temperature
            chat_format: llama.cpp chat format used for tool-enabled calls
            verbose: Pass through llama.cpp logging
        """
        if not _LLAMA_AVAILABLE:
            raise ImportError(
                "The local model client requires llama-cpp-python.\n"
                "Install with: pip install npc-mind[llm]"
            )

        self.template: PromptTemplate = template or default_template_for_model(model_path)
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.llm = Llama(
            model_path=model_path,
            n_ctx=n_ctx,
            n_threads=n_threads,
            n_gpu_layers=n_gpu_layers,
            chat_format=chat_format,
            verbose=verbose,
        )
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="npc-llm")
        logger.info(
            f"Loaded model: {model_path} (template: {self.template})",
            extra=log_extra("llm"),
        )

    def send_reasoning(self, prompt: str, system: Optional[str] = None) -> "Future[str]":
        return self._executor.submit(self._reason, prompt, system or "")

    def send_with_tools(
        self,
        prompt: str,
        tools: List[Dict[str, Any]],
        system: Optional[str] = None,
    ) -> "Future[ModelReply]":
        return self._executor.submit(self._chat_with_tools, prompt, tools, system or "")

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def _reason(self, prompt: str, system: str) -> str:
        text = render(self.template, system, prompt)
        start = time.perf_counter()
        try:
            with self._lock:
                out = self.llm(
                    text,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    stop=stop_tokens_for_template(self.template),
                    echo=False,
                )
            result = out["choices"][0]["text"].strip()
        except Exception as e:
            logger.error(f"LLM generation failed: {e}", extra=log_extra("llm"))
            raise RemoteCallFailure(str(e)) from e
        logger.debug(
            f"Reasoning completed in {(time.perf_counter() - start) * 1000:.1f}ms",
            extra=log_extra("llm", event_type="latency"),
        )
        return result

    def _chat_with_tools(self, prompt: str, tools: List[Dict[str, Any]], system: str) -> ModelReply:
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]
        try:
            with self._lock:
                out = self.llm.create_chat_completion(
                    messages=messages,
                    tools=tools,
                    tool_choice="auto",
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                )
            message = out["choices"][0]["message"]
        except Exception as e:
            logger.error(f"LLM tool call failed: {e}", extra=log_extra("llm"))
            raise RemoteCallFailure(str(e)) from e
        return parse_chat_message(message)


def parse_chat_message(message: Dict[str, Any]) -> ModelReply:
    """Convert a chat-completion message into a ModelReply."""
    calls = []
    for call in message.get("tool_calls") or []:
        function = call.get("function") or {}
        arguments = function.get("arguments", {})
        if not isinstance(arguments, (str, dict)):
            arguments = json.dumps(arguments)
        calls.append(ToolInvocation(name=function.get("name", ""), arguments=arguments))
    return ModelReply(text=(message.get("content") or "").strip(), tool_calls=calls)
