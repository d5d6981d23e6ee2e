"""Copy rewrite and validation in the brand voice.

Prompts are Jinja2 templates in ./templates; the structured answer is
returned through a forced tool call.
"""
import logging
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader

from common.config import get_config
from common.errors import ValidationError

from .gateway import AIGatewayClient

logger = logging.getLogger(__name__)
TEMPLATE_DIR = Path(__file__).parent / "templates"

BRAND = "BORAnaOBRA"

MARKETING_TERMS = [
    "página, landing page, LP",
    "carrinho, checkout",
    "lançamento, lança, launch",
    "abertura, abrir carrinho",
    "click, clique, CTA",
    "download, baixar (quando refere a material)",
    "funil, topo de funil, fundo de funil",
    "lead, leads, captura",
    "tráfego, ads, anúncio",
    "conversão, converter",
    "copy, copywriting",
    "gatilho, gatilho mental",
    "escassez, urgência artificial",
    "bônus, oferta, desconto",
    "upsell, downsell, order bump",
    "webinar, masterclass, imersão",
]

DIMENSIONS = [
    {"nome": "Tom e Voz", "peso": 18, "optional": False},
    {"nome": "Metáforas de Obra", "peso": 12, "optional": False},
    {"nome": "Emoções Trabalhadas", "peso": 12, "optional": False},
    {"nome": "Estrutura Invisível", "peso": 18, "optional": False},
    {"nome": "Restrições de Linguagem", "peso": 15, "optional": False},
    {"nome": "Português e Gramática", "peso": 10, "optional": False},
    {"nome": "Prova Social", "peso": 5, "optional": True},
    {"nome": "Urgência", "peso": 5, "optional": True},
    {"nome": "Formato e Legibilidade", "peso": 5, "optional": False},
]

VALIDATION_STATUSES = ["Aprovado", "Ajustes Recomendados", "Necessita Revisão", "Não Aprovado"]

REWRITE_TOOL = {
    "type": "function",
    "function": {
        "name": "rewrite_copy",
        "description": f"Retorna a copy reescrita no estilo {BRAND}",
        "parameters": {
            "type": "object",
            "properties": {
                "nova_copy": {
                    "type": "string",
                    "description": f"O texto reescrito seguindo as diretrizes {BRAND} estilo Rafa+Alex",
                },
            },
            "required": ["nova_copy"],
        },
    },
}

_string_list = {"type": "array", "items": {"type": "string"}}

VALIDATE_TOOL = {
    "type": "function",
    "function": {
        "name": "validate_copy",
        "description": f"Retorna a análise estruturada da copy no padrão {BRAND}",
        "parameters": {
            "type": "object",
            "properties": {
                "pontuacao_geral": {"type": "number", "description": "Pontuação geral de 0 a 100"},
                "status": {
                    "type": "string",
                    "enum": VALIDATION_STATUSES,
                    "description": "90-100=Aprovado, 75-89=Ajustes Recomendados, "
                                   "60-74=Necessita Revisão, 0-59=Não Aprovado",
                },
                "dimensoes": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "nome": {"type": "string"},
                            "pontuacao": {"type": "number"},
                            "peso": {"type": "number"},
                            "status": {"type": "string", "enum": ["Ótimo", "Atenção", "Crítico", "N/A"]},
                            "problemas": _string_list,
                            "sugestoes": _string_list,
                            "exemplo_bora": {"type": "string"},
                        },
                        "required": ["nome", "pontuacao", "peso", "status", "problemas", "sugestoes"],
                    },
                },
                "destaques_positivos": _string_list,
                "trechos_problematicos": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "trecho_original": {"type": "string"},
                            "problema": {"type": "string"},
                            "sugestao_reescrita": {"type": "string"},
                        },
                        "required": ["trecho_original", "problema", "sugestao_reescrita"],
                    },
                },
                "resumo_executivo": {"type": "string"},
                "ajuste_prioritario": {
                    "type": "string",
                    "description": "O ÚNICO problema mais crítico a resolver primeiro",
                },
                "exemplo_reescrito": {
                    "type": "object",
                    "properties": {
                        "original": {"type": "string"},
                        "reescrito": {"type": "string"},
                    },
                    "required": ["original", "reescrito"],
                },
                "sinais_alerta": {
                    **_string_list,
                    "description": f"Lista de sinais de que o texto NÃO é {BRAND}",
                },
            },
            "required": [
                "pontuacao_geral", "status", "dimensoes", "destaques_positivos",
                "trechos_problematicos", "resumo_executivo", "ajuste_prioritario",
                "exemplo_reescrito", "sinais_alerta",
            ],
        },
    },
}

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)


def render_prompt(name: str, **context) -> str:
    return _env.get_template(f"{name}.md.j2").render(brand=BRAND, **context)


def validation_status(score: float) -> str:
    """Status label for an overall score."""
    if score >= 90:
        return "Aprovado"
    if score >= 75:
        return "Ajustes Recomendados"
    if score >= 60:
        return "Necessita Revisão"
    return "Não Aprovado"


def _require_text(texto) -> str:
    if not texto or not isinstance(texto, str):
        raise ValidationError("Texto é obrigatório")
    return texto


async def rewrite_copy(texto, problemas: Optional[list] = None,
                       sugestoes: Optional[list] = None,
                       client: Optional[AIGatewayClient] = None) -> dict:
    """Rewrite a text fixing the given problems. Returns {"nova_copy": ...}."""
    texto = _require_text(texto)
    client = client or AIGatewayClient()
    user_prompt = render_prompt(
        "rewrite_user",
        texto=texto,
        problemas=problemas or [],
        sugestoes=sugestoes or [],
    )
    result = await client.call_tool(
        render_prompt("rewrite_system"), user_prompt, REWRITE_TOOL,
        failure_message="Erro ao processar reescrita",
    )
    logger.info("Copy rewrite complete")
    return result


async def validate_copy(texto, client: Optional[AIGatewayClient] = None,
                        max_chars: Optional[int] = None) -> dict:
    """Score a text against the brand guidelines."""
    texto = _require_text(texto)
    max_chars = max_chars or get_config().ai.max_copy_chars
    if len(texto) > max_chars:
        raise ValidationError(f"Texto excede o limite de {max_chars:,} caracteres".replace(",", "."))
    client = client or AIGatewayClient()
    system_prompt = render_prompt(
        "validate_system", marketing_terms=MARKETING_TERMS, dimensions=DIMENSIONS
    )
    result = await client.call_tool(
        system_prompt,
        render_prompt("validate_user", texto=texto, dimensions=DIMENSIONS),
        VALIDATE_TOOL,
        failure_message="Erro ao processar validação",
    )
    logger.info(f"Copy validation complete, score: {result.get('pontuacao_geral')}")
    return result
