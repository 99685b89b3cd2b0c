# llm service using the gemini rest api for streamed text generation
import requests
import json
import logging
from typing import Iterator, Optional

from .config import Settings, load_settings
from .errors import LLMServiceError

logger = logging.getLogger(__name__)


# service for streaming and one-shot generation against gemini
class GeminiLLMService:
    """Gemini client over plain HTTP.

    Upstream failures surface as LLMServiceError; deciding what to do
    with a half-finished stream is up to the caller.
    """

    # initialize service with settings from the environment unless given
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or load_settings()
        self.model = self.settings.gemini_model
        self.base_url = self.settings.gemini_base_url
        self.session = requests.Session()

        if not self.settings.gemini_api_key:
            logger.warning("GEMINI_API_KEY is not set; requests will be rejected upstream")

    def _url(self, method: str) -> str:
        return f"{self.base_url}/models/{self.model}:{method}"

    def _payload(self, prompt: str, temperature: Optional[float], max_tokens: Optional[int]) -> dict:
        config = {
            "temperature": self.settings.gemini_temperature if temperature is None else temperature,
        }
        if max_tokens:
            config["maxOutputTokens"] = max_tokens
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": config,
        }

    # pull the text parts out of one response payload
    @staticmethod
    def extract_text(data: dict) -> str:
        parts = []
        for candidate in data.get("candidates", []):
            for part in candidate.get("content", {}).get("parts", []):
                parts.append(part.get("text", ""))
        return "".join(parts)

    def _post(self, method: str, payload: dict, stream: bool = False, params: Optional[dict] = None):
        try:
            response = self.session.post(
                self._url(method),
                params=params,
                json=payload,
                headers={"x-goog-api-key": self.settings.gemini_api_key},
                stream=stream,
                timeout=self.settings.gemini_timeout,
            )
        except requests.exceptions.Timeout:
            raise LLMServiceError("Request timed out. The model might be too slow or overloaded.")
        except requests.exceptions.RequestException as e:
            raise LLMServiceError(f"Cannot reach Gemini API: {str(e)}")

        if response.status_code != 200:
            raise LLMServiceError(
                f"Gemini API error: {response.status_code} - {response.text[:300]}",
                status_code=response.status_code,
            )
        return response

    # stream text fragments as the model produces them
    def stream_text(self, prompt: str, temperature: Optional[float] = None,
                    max_tokens: Optional[int] = None) -> Iterator[str]:
        """Yield text fragments from streamGenerateContent (server-sent events)."""
        response = self._post(
            "streamGenerateContent",
            self._payload(prompt, temperature, max_tokens),
            stream=True,
            params={"alt": "sse"},
        )
        try:
            for line in response.iter_lines():
                if not line or not line.startswith(b"data:"):
                    continue
                try:
                    data = json.loads(line[len(b"data:"):])
                except json.JSONDecodeError:
                    logger.warning(f"Skipping malformed stream event: {line[:80]!r}")
                    continue
                text = self.extract_text(data)
                if text:
                    yield text
        except requests.exceptions.RequestException as e:
            raise LLMServiceError(f"Stream interrupted: {str(e)}")
        finally:
            response.close()

    # generate the whole response in one call
    def generate_text(self, prompt: str, temperature: Optional[float] = None,
                      max_tokens: Optional[int] = None) -> str:
        response = self._post("generateContent", self._payload(prompt, temperature, max_tokens))
        try:
            return self.extract_text(response.json()).strip()
        except ValueError:
            raise LLMServiceError("Gemini API returned a non-JSON response")

    # test if the gemini connection is working
    def test_connection(self) -> bool:
        """Test if the LLM service is working"""
        try:
            response = self.generate_text("Hello! Please respond with just 'OK' to confirm you're working.", max_tokens=10)
            logger.info(f"✓ LLM test successful. Response: {response}")
            return True
        except LLMServiceError as e:
            logger.error(f"✗ LLM test failed: {str(e)}")
            return False


# global instance for singleton pattern
llm_service = None


# get or create the global llm service instance
def get_llm_service() -> GeminiLLMService:
    """Get or create the global LLM service instance"""
    global llm_service
    if llm_service is None:
        llm_service = GeminiLLMService()
    return llm_service
