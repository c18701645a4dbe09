from __future__ import annotations


class PositionAprError(Exception):
    """Base para erros do motor de APR."""


class DomainError(PositionAprError):
    """Valor fora do dominio matematico (preco nao positivo, tick invalido)."""


class InvalidRangeError(PositionAprError):
    """Faixa de preco invalida para a posicao."""

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


class InvalidPositionInputError(PositionAprError):
    """Parametros invalidos para calculo de APR da posicao."""


class PoolNotFoundError(PositionAprError):
    """Pool solicitada nao existe."""


class SourceUnavailableError(PositionAprError):
    """Nenhuma fonte (subgraph ou RPC) conseguiu responder."""


class StaleDataError(PositionAprError):
    """Subgraph atrasado alem do limite; fallback e tentado automaticamente."""

    def __init__(self, lag_seconds: int, threshold_seconds: int):
        super().__init__(
            f"Indexed source lag {lag_seconds}s exceeds threshold {threshold_seconds}s."
        )
        self.lag_seconds = lag_seconds
        self.threshold_seconds = threshold_seconds


class CacheCorruptionError(PositionAprError):
    """Entrada de cache malformada; tratada como miss."""


class PriceLookupDomainError(PositionAprError):
    """Nao foi possivel obter preco para os tokens."""
