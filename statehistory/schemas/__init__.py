from statehistory.schemas.state_history import StateHistoryRead

__all__ = ["StateHistoryRead"]
