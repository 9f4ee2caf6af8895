from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import httpx

from .settings import settings


logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
VERTEX_URL = "https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{model}:generateContent"


class GeminiError(RuntimeError):
	pass


def to_gemini_contents(messages: List[Dict[str, str]], system: Optional[str] = None) -> Dict[str, Any]:
	"""Split chat-style messages into Gemini ``contents`` and a system instruction."""
	instructions = [system] if system else []
	contents: List[Dict[str, Any]] = []
	for m in messages:
		text = m.get("content") or ""
		if m.get("role") == "system":
			instructions.append(text)
		else:
			contents.append({"role": "model" if m.get("role") == "assistant" else "user", "parts": [{"text": text}]})
	body: Dict[str, Any] = {"contents": contents}
	joined = "\n\n".join(p for p in instructions if p)
	if joined:
		body["systemInstruction"] = {"parts": [{"text": joined}]}
	return body


class GeminiClient:
	"""Chat completions against Gemini, with OpenRouter as an optional second route.

	The fallback is only tried when OPENROUTER_API_KEY is set.
	"""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		model: Optional[str] = None,
		base_url: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		if settings.gemini_provider == "vertex":
			region = settings.vertex_region
			self.base_url = base_url or VERTEX_URL.format(
				region=region, project=settings.vertex_project or "placeholder-project", model=self.model
			)
		else:
			self.base_url = base_url or GEMINI_URL.format(model=self.model)
		self.openrouter_key = settings.openrouter_api_key
		self._http = httpx.AsyncClient(timeout=30, transport=transport)

	async def __aenter__(self) -> "GeminiClient":
		return self

	async def __aexit__(self, *exc) -> None:
		await self.aclose()

	async def aclose(self) -> None:
		await self._http.aclose()

	async def chat(
		self,
		messages: List[Dict[str, str]],
		*,
		system: Optional[str] = None,
		temperature: float = 0.7,
		max_output_tokens: int = 512,
	) -> str:
		"""Return the model's next turn.

		``messages`` use the roles ``user`` and ``assistant``; ``system``
		entries are folded into the system instruction.
		"""
		body = to_gemini_contents(messages, system)
		body["generationConfig"] = {"temperature": temperature, "maxOutputTokens": max_output_tokens}
		try:
			return await self._call_gemini(body)
		except GeminiError as e:
			if not self.openrouter_key:
				raise
			logger.warning("Gemini failed, retrying through OpenRouter: %s", e)
			chat_messages = [{"role": "system", "content": system}] if system else []
			chat_messages += [{"role": m["role"], "content": m.get("content") or ""} for m in messages]
			try:
				return await self._call_openrouter(chat_messages, temperature, max_output_tokens)
			except GeminiError as fallback_err:
				raise GeminiError(f"Gemini failed ({e}); OpenRouter failed ({fallback_err})") from fallback_err

	async def _call_gemini(self, body: Dict[str, Any]) -> str:
		# AI Studio takes the key as a query parameter, Vertex as a header
		if settings.gemini_provider == "vertex":
			kwargs: Dict[str, Any] = {"headers": {"x-goog-api-key": self.api_key}}
		else:
			kwargs = {"params": {"key": self.api_key}}
		try:
			r = await self._http.post(self.base_url, json=body, **kwargs)
			r.raise_for_status()
		except httpx.HTTPError as e:
			raise GeminiError(str(e)) from e
		try:
			return r.json()["candidates"][0]["content"]["parts"][0]["text"]
		except (KeyError, IndexError, TypeError, ValueError) as e:
			raise GeminiError(f"Unexpected Gemini response: {r.text[:200]}") from e

	async def _call_openrouter(self, messages: List[Dict[str, str]], temperature: float, max_tokens: int) -> str:
		headers = {
			"Authorization": f"Bearer {self.openrouter_key}",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		payload = {
			"model": settings.openrouter_model,
			"messages": messages,
			"temperature": temperature,
			"max_tokens": max_tokens,
		}
		try:
			r = await self._http.post(settings.openrouter_base_url, headers=headers, json=payload)
			r.raise_for_status()
			return r.json()["choices"][0]["message"]["content"]
		except httpx.HTTPError as e:
			raise GeminiError(str(e)) from e
		except (KeyError, IndexError, TypeError, ValueError) as e:
			raise GeminiError("Unexpected OpenRouter response") from e
