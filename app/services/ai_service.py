import logging

import httpx
from openai import APIError, APIStatusError, AsyncOpenAI

from app.config import Settings
from app.errors import UpstreamError

logger = logging.getLogger(__name__)


def build_prompt(resume_text: str, char_limit: int = 3000) -> str:
    """
    Only the first `char_limit` characters are sent. Long resumes are judged on
    their leading portion.
    """
    excerpt = resume_text[:char_limit]

    return f"""Analyze this resume and provide a comprehensive evaluation.

Resume Text:
{excerpt}

Respond with a single JSON object and nothing else, using exactly this structure:
{{
  "score": <integer from 0 to 100>,
  "atsFriendly": <true or false>,
  "strengths": [<string>, ...],
  "improvements": [<string>, ...],
  "keywords": {{"found": [<string>, ...], "missing": [<string>, ...]}},
  "summary": <string>
}}

Rules:
- score measures overall resume quality, 100 is best
- atsFriendly says whether applicant tracking systems can parse the resume
- keywords.found lists relevant skills present, keywords.missing lists ones worth adding
- keep the summary to two or three sentences"""


class AIService:
    """Calls OpenRouter through its OpenAI-compatible chat completions API."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient = None):
        self.base_url = settings.openrouter_base_url
        self.model = settings.openrouter_model
        self.timeout = settings.openrouter_timeout_seconds
        self.max_retries = settings.openrouter_max_retries
        self.http_client = http_client

    def _client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=self.max_retries,
            http_client=self.http_client,
        )

    async def analyze_resume(self, api_key: str, prompt: str) -> str:
        """
        Send the prompt with the user's key.
        Returns: the raw text of the model reply, which may or may not be JSON.
        """
        client = self._client(api_key)
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "system",
                        "content": "You are an expert resume reviewer and ATS specialist. Always answer with valid JSON."
                    },
                    {"role": "user", "content": prompt}
                ],
                temperature=0.3,
                max_tokens=1500
            )
        except APIStatusError as e:
            logger.error(f"OpenRouter returned HTTP {e.status_code}")
            raise UpstreamError()
        except APIError as e:
            logger.error(f"OpenRouter request failed: {type(e).__name__}")
            raise UpstreamError()
        except ValueError as e:
            logger.error(f"OpenRouter response could not be decoded: {type(e).__name__}")
            raise UpstreamError()
        finally:
            if self.http_client is None:
                await client.close()

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            content = None

        if not isinstance(content, str) or not content.strip():
            logger.error("OpenRouter response carried no message content")
            raise UpstreamError()

        return content
