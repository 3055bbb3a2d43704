# stealth_console/persona.py
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .config import PERSONA_MODES, ConfigError
from .randomness import Randomness


class PersonaMode(Enum):
    RANDOM = "random"
    SPEEDY = "speedy"
    CASUAL = "casual"
    LAZY = "lazy"
    NIGHT_OWL = "night_owl"
    METHODICAL = "methodical"

    @classmethod
    def parse(cls, raw: str) -> "PersonaMode":
        try:
            return cls(raw)
        except ValueError:
            raise ConfigError(f"Unknown persona mode {raw!r}; expected one of {', '.join(PERSONA_MODES)}") from None


@dataclass(frozen=True)
class Persona:
    name: str
    user_agent: str
    idle_chance: float   # 0..1, шанс полностью пустой сессии
    delay_factor: float  # множитель для всех пауз кошелька

    def describe(self) -> str:
        return f"{self.name} | delay ×{self.delay_factor:.2f} | idle {round(self.idle_chance * 100)}%"


PERSONA_CATALOG: Dict[PersonaMode, Persona] = {
    PersonaMode.SPEEDY: Persona(
        "speedy",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36",
        idle_chance=0.05, delay_factor=0.6,
    ),
    PersonaMode.CASUAL: Persona(
        "casual",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_4) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Safari/605.1.15",
        idle_chance=0.2, delay_factor=1.0,
    ),
    PersonaMode.LAZY: Persona(
        "lazy",
        "Mozilla/5.0 (X11; Linux x86_64; rv:125.0) Gecko/20100101 Firefox/125.0",
        idle_chance=0.4, delay_factor=1.8,
    ),
    PersonaMode.NIGHT_OWL: Persona(
        "night_owl",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0 Safari/537.36 Edg/123.0",
        idle_chance=0.15, delay_factor=1.3,
    ),
    PersonaMode.METHODICAL: Persona(
        "methodical",
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Mobile/15E148",
        idle_chance=0.1, delay_factor=1.2,
    ),
}


def get_persona_by_mode(mode, rng: Optional[Randomness] = None) -> Persona:
    """``random`` draws uniformly from the catalog, a named mode is fixed."""
    if not isinstance(mode, PersonaMode):
        mode = PersonaMode.parse(mode)
    if mode is PersonaMode.RANDOM:
        rng = rng or Randomness()
        return rng.choice(list(PERSONA_CATALOG.values()))
    return PERSONA_CATALOG[mode]
