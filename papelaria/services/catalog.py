"""Menu catalog, FAQ answers and keyword vocabularies, kept as data."""

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from papelaria.config import Settings
from papelaria.logging_config import get_logger

logger = get_logger("catalog")

DEFAULT_ALLOWED_TYPES = ["pdf", "jpeg", "png", "doc", "docx"]


class CatalogEntry(BaseModel):
    number: int = Field(ge=1)
    kind: str
    menu_line: str
    reply: str
    requires_upload: bool = False
    confirm_on_upload: bool = False
    allowed_types: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_TYPES))


class ServiceAnswer(BaseModel):
    key: str
    keywords: list[str]
    answer: str


class Catalog(BaseModel):
    shop_name: str = "Papelaria BH"
    entries: list[CatalogEntry]
    handoff_option: int = 6
    close_option: int = 0
    handoff_line: str = "*Falar com humano* - 👩‍💼 Atendimento personalizado."
    close_line: str = "*Encerrar* - ❌ Finalizar conversa."
    services: list[ServiceAnswer] = Field(default_factory=list)
    greeting_keywords: list[str] = Field(default_factory=list)
    positive_feedback: list[str] = Field(default_factory=list)
    negative_feedback: list[str] = Field(default_factory=list)
    default_allowed_types: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_TYPES))

    @model_validator(mode="after")
    def _check_numbers(self) -> "Catalog":
        numbers = [entry.number for entry in self.entries]
        if len(numbers) != len(set(numbers)):
            raise ValueError("catalog entry numbers must be unique")
        kinds = [entry.kind for entry in self.entries]
        if len(kinds) != len(set(kinds)):
            raise ValueError("catalog entry kinds must be unique")
        if self.handoff_option == self.close_option:
            raise ValueError("handoff and close options must differ")
        for option in (self.handoff_option, self.close_option):
            if option in numbers:
                raise ValueError(f"option {option} collides with a catalog entry")
        return self

    @property
    def valid_options(self) -> frozenset[int]:
        return frozenset([entry.number for entry in self.entries] + [self.handoff_option, self.close_option])

    def entry(self, number: int) -> Optional[CatalogEntry]:
        for entry in self.entries:
            if entry.number == number:
                return entry
        return None

    def entry_for_kind(self, kind: str) -> Optional[CatalogEntry]:
        for entry in self.entries:
            if entry.kind == kind:
                return entry
        return None

    def render_menu(self) -> str:
        lines = [f"{_option_label(entry.number)} {entry.menu_line}" for entry in sorted(self.entries, key=lambda e: e.number)]
        lines.append(f"{_option_label(self.handoff_option)} {self.handoff_line}")
        lines.append(f"{_option_label(self.close_option)} {self.close_line}")
        return (
            f"📋 *Menu Principal - {self.shop_name}* 📋\n\n"
            + "\n".join(lines)
            + "\n\n*Escolha uma opção digitando o número correspondente.*"
        )


def _option_label(number: int) -> str:
    if 0 <= number <= 9:
        return f"{number}️⃣"
    return f"*{number}.*"


def default_catalog(shop_name: str = "Papelaria BH") -> Catalog:
    return Catalog(
        shop_name=shop_name,
        entries=[
            CatalogEntry(
                number=1,
                kind="print",
                menu_line="*Impressão* - 🖨️ Envie seus documentos para impressão.",
                reply="🖨️ *Você escolheu Impressão*. Por favor, envie o arquivo em *PDF, imagem ou DOC* para impressão.",
                requires_upload=True,
                confirm_on_upload=True,
            ),
            CatalogEntry(
                number=2,
                kind="copy",
                menu_line="*Xerox* - 📑 Venha até nossa loja para realizar cópias.",
                reply="📑 *Você escolheu Xerox*. Por favor, venha até nossa loja para realizar as cópias.",
            ),
            CatalogEntry(
                number=3,
                kind="photo",
                menu_line="*Foto 3x4* - 📸 Envie sua foto do rosto.",
                reply="📸 *Você escolheu Foto 3x4*. Por favor, envie uma *foto do rosto* para prosseguirmos.",
                requires_upload=True,
                confirm_on_upload=True,
                allowed_types=["jpeg", "png"],
            ),
            CatalogEntry(
                number=4,
                kind="lamination",
                menu_line="*Plastificação* - 📂 Envie seu arquivo ou venha à loja.",
                reply="📂 *Você escolheu Plastificação*. Envie o arquivo em *PDF* ou venha à loja para plastificar seu documento.",
            ),
            CatalogEntry(
                number=5,
                kind="binding",
                menu_line="*Encadernação* - 📚 Traga seu material até a loja.",
                reply="📚 *Você escolheu Encadernação*. Traga seu material até a loja; a encadernação fica pronta no mesmo dia.",
            ),
        ],
        services=[
            ServiceAnswer(
                key="xerox",
                keywords=["xerox", "copia", "copias"],
                answer="📑 *Xerox*: R$ 0,50 por página (P&B) e R$ 1,50 colorida. Venha até a loja!",
            ),
            ServiceAnswer(
                key="impressao",
                keywords=["impressao", "imprimir"],
                answer="🖨️ *Impressão*: R$ 1,00 por página (P&B) e R$ 2,00 colorida. Digite *1* para enviar seu arquivo.",
            ),
            ServiceAnswer(
                key="plastificacao",
                keywords=["plastificacao", "plastificar"],
                answer="📂 *Plastificação*: a partir de R$ 3,00 (tamanho documento).",
            ),
            ServiceAnswer(
                key="encadernacao",
                keywords=["encadernacao", "encadernar"],
                answer="📚 *Encadernação*: a partir de R$ 8,00 com espiral e capa transparente.",
            ),
            ServiceAnswer(
                key="foto",
                keywords=["foto 3x4", "3x4"],
                answer="📸 *Foto 3x4*: R$ 10,00 com 6 fotos. Digite *3* para enviar sua foto.",
            ),
        ],
        greeting_keywords=["menu", "oi", "ola", "servicos", "bom dia", "boa tarde", "boa noite"],
        positive_feedback=["👍", "sim", "gostei", "otimo", "bom", "excelente"],
        negative_feedback=["👎", "nao", "nao gostei", "ruim", "pessimo"],
    )


def load_catalog(settings: Settings) -> Catalog:
    """Build the catalog from defaults, an optional JSON override, and the option numbers in settings."""
    catalog = default_catalog(settings.shop_name)
    if settings.catalog_path:
        path = Path(settings.catalog_path)
        data = json.loads(path.read_text(encoding="utf-8"))
        merged = {**catalog.model_dump(), **data}
        catalog = Catalog.model_validate(merged)
        logger.info("Catalog loaded", extra={"context": {"path": str(path), "entries": len(catalog.entries)}})

    return Catalog.model_validate(
        {
            **catalog.model_dump(),
            "handoff_option": settings.handoff_option,
            "close_option": settings.close_option,
        }
    )
