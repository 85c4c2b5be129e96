"""
Mythic+ score tracker.
Reconciles tracked characters against Blizzard and Raider.IO, persists score
changes and announces them to a Discord channel.
"""
from tracker.pipeline import PassResult, SyncPipeline
from tracker.store import CharacterStore, InMemoryCharacterStore, SQLCharacterStore

__all__ = [
    "PassResult",
    "SyncPipeline",
    "CharacterStore",
    "InMemoryCharacterStore",
    "SQLCharacterStore",
]
