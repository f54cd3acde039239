"""
Delivery stage table.

Every record walks the same eleven stages, one per elapsed day. Days 8
and 9 (failed attempt, retry) are part of the path to delivery for all
records.
"""

from dataclasses import dataclass
from typing import Optional

FIRST_DAY = 0
DELIVERED_DAY = 10
DEFAULT_DESTINATION = "destino"


@dataclass(frozen=True)
class Stage:
    day: int
    status: str
    description: str

    def describe(self, city: Optional[str]) -> str:
        return self.description.format(city=city or DEFAULT_DESTINATION)


STAGES = (
    Stage(0, "Despachado", "Objeto postado"),
    Stage(1, "Em trânsito local", "Objeto em trânsito - por favor aguarde"),
    Stage(2, "Chegou no centro de distribuição", "Objeto chegou ao centro de distribuição"),
    Stage(3, "Preparando para sair", "Objeto sendo preparado para envio"),
    Stage(4, "Pacote em trânsito", "Objeto em trânsito para {city}"),
    Stage(5, "Pacote chegou na cidade", "Objeto chegou em {city}"),
    Stage(6, "Pacote pronto para entrega", "Objeto pronto para entrega"),
    Stage(7, "Saiu para entrega", "Objeto saiu para entrega"),
    Stage(8, "Falha na entrega", "Destinatário não encontrado"),
    Stage(9, "Saindo para entrega novamente", "Nova tentativa de entrega"),
    Stage(10, "Entregue", "Objeto entregue ao destinatário"),
)


def clamp_day(days: int) -> int:
    return max(FIRST_DAY, min(days, DELIVERED_DAY))


def stage_for(day: int) -> Stage:
    """Stage for a day index; out-of-range input is clamped."""
    return STAGES[clamp_day(day)]
