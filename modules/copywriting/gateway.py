"""AI chat-completions gateway adapter with forced tool calls.

The gateway speaks the OpenAI chat-completions format. Every call forces
a single function tool so the answer comes back as structured JSON in the
tool call arguments.
"""
import json
import logging
from typing import Optional

import httpx

from common.config import AIGatewayConfig, get_config
from common.errors import ConfigurationError, HubError

logger = logging.getLogger(__name__)

RATE_LIMITED = "Limite de requisições excedido. Tente novamente em alguns minutos."
PAYMENT_REQUIRED = "Créditos insuficientes. Entre em contato com o administrador."
UNEXPECTED_FORMAT = "Formato de resposta inesperado da IA"


class AIGatewayClient:
    """Chat-completions gateway adapter."""

    def __init__(self, config: Optional[AIGatewayConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or get_config().ai
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    async def call_tool(self, system_prompt: str, user_prompt: str, tool: dict,
                        failure_message: str = "Erro ao processar requisição") -> dict:
        """Run one completion forcing `tool` and return its parsed arguments.

        Raises:
            HubError: 429/402 passed through from the gateway, 500 otherwise.
        """
        if not self.is_configured:
            raise ConfigurationError("Serviço de IA não configurado")

        name = tool["function"]["name"]
        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "tools": [tool],
            "tool_choice": {"type": "function", "function": {"name": name}},
        }

        logger.info(f"Calling AI gateway ({self.config.model}) for {name}")
        async with httpx.AsyncClient(transport=self._transport, timeout=120.0) as client:
            resp = await client.post(
                self.config.url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.config.api_key}",
                    "Content-Type": "application/json",
                },
            )

        if resp.status_code == 429:
            logger.error("AI gateway rate limit exceeded")
            raise HubError(RATE_LIMITED, 429)
        if resp.status_code == 402:
            logger.error("AI gateway payment required")
            raise HubError(PAYMENT_REQUIRED, 402)
        if resp.status_code >= 400:
            logger.error(f"AI gateway error: {resp.status_code} {resp.text}")
            raise HubError(failure_message, 500)

        return self._tool_arguments(resp.json(), name)

    @staticmethod
    def _tool_arguments(body: dict, name: str) -> dict:
        try:
            call = body["choices"][0]["message"]["tool_calls"][0]["function"]
        except (KeyError, IndexError, TypeError):
            call = None
        if not call or call.get("name") != name:
            logger.error(f"Unexpected AI response format: {json.dumps(body)[:500]}")
            raise HubError(UNEXPECTED_FORMAT, 500)
        try:
            return json.loads(call["arguments"])
        except (TypeError, ValueError) as e:
            logger.error(f"Tool arguments are not valid JSON: {e}")
            raise HubError(UNEXPECTED_FORMAT, 500)
