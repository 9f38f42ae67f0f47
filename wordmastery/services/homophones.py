"""Homophone lookup used when matching spoken answers.

Young readers are marked by what they *say*, and speech recognisers
pick one spelling out of many for the same sound.  "Read" comes back
as "red", "there" as "their".  The index maps every member of a
homophone group to all the other members so either spelling counts.
"""

from __future__ import annotations

import logging
from typing import Iterable

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Groups of words that sound alike.  Lower-case; order is irrelevant.
# ---------------------------------------------------------------------------

DEFAULT_HOMOPHONE_GROUPS: tuple[tuple[str, ...], ...] = (
    ("sight", "site", "cite"),
    ("their", "there", "they're"),
    ("to", "too", "two"),
    ("your", "you're"),
    ("its", "it's"),
    ("know", "no"),
    ("knew", "new", "gnu"),
    ("knight", "night"),
    ("knot", "not"),
    ("write", "right", "rite"),
    ("read", "red"),
    ("hear", "here"),
    ("sea", "see"),
    ("sun", "son"),
    ("one", "won"),
    ("be", "bee"),
    ("by", "buy", "bye"),
    ("for", "four", "fore"),
    ("ate", "eight"),
    ("wait", "weight"),
    ("great", "grate"),
    ("pair", "pear", "pare"),
    ("fair", "fare"),
    ("bare", "bear"),
    ("wear", "where", "ware"),
    ("dear", "deer"),
    ("peace", "piece"),
    ("weak", "week"),
    ("meet", "meat"),
    ("tail", "tale"),
    ("sale", "sail"),
    ("mail", "male"),
    ("rain", "reign", "rein"),
    ("plain", "plane"),
    ("main", "mane"),
    ("road", "rode", "rowed"),
    ("hole", "whole"),
    ("soul", "sole"),
    ("role", "roll"),
    ("flower", "flour"),
    ("hour", "our"),
    ("would", "wood"),
    ("steal", "steel"),
    ("heal", "heel"),
    ("real", "reel"),
    ("break", "brake"),
    ("stake", "steak"),
    ("made", "maid"),
    ("thrown", "throne"),
    ("grown", "groan"),
    ("shown", "shone"),
    ("loan", "lone"),
    ("nose", "knows"),
    ("rose", "rows"),
    ("toes", "tows"),
    ("threw", "through"),
    ("blue", "blew"),
    ("flew", "flu", "flue"),
    ("dew", "due"),
    ("scent", "sent", "cent"),
    ("seen", "scene"),
    ("feet", "feat"),
    ("beat", "beet"),
    ("peak", "peek"),
    ("creek", "creak"),
    ("sweet", "suite"),
    ("tide", "tied"),
    ("die", "dye"),
    ("eye", "aye"),
    ("high", "hi"),
    ("pie", "pi"),
    ("lie", "lye"),
    ("might", "mite"),
    ("find", "fined"),
    ("mind", "mined"),
    ("time", "thyme"),
    ("wine", "whine"),
    ("sign", "sine"),
    ("vein", "vain", "vane"),
    ("pain", "pane"),
    ("way", "weigh", "whey"),
    ("prey", "pray"),
    ("hey", "hay"),
    ("gray", "grey"),
    ("toe", "tow"),
    ("row", "roe"),
    ("sew", "so", "sow"),
    ("bow", "beau"),
    ("foe", "faux"),
    ("doe", "dough"),
    ("moan", "mown"),
    ("bored", "board"),
    ("chord", "cord"),
    ("poured", "pored"),
    ("horse", "hoarse"),
    ("course", "coarse"),
    ("wore", "war"),
    ("more", "moor"),
    ("poor", "pour", "pore"),
    ("soar", "sore"),
    ("boar", "bore"),
    ("oar", "or", "ore"),
    ("allowed", "aloud"),
    ("ant", "aunt"),
    ("ball", "bawl"),
    ("band", "banned"),
    ("base", "bass"),
    ("beach", "beech"),
    ("berth", "birth"),
    ("bread", "bred"),
    ("brews", "bruise"),
    ("ceiling", "sealing"),
    ("cell", "sell"),
    ("cereal", "serial"),
    ("cheap", "cheep"),
    ("chews", "choose"),
    ("chili", "chilly"),
    ("clause", "claws"),
    ("crews", "cruise"),
    ("days", "daze"),
    ("disc", "disk"),
    ("dual", "duel"),
    ("earn", "urn"),
    ("ewe", "you", "yew"),
    ("faint", "feint"),
    ("fir", "fur"),
    ("flair", "flare"),
    ("flea", "flee"),
    ("foreword", "forward"),
    ("gait", "gate"),
    ("genes", "jeans"),
    ("gorilla", "guerrilla"),
    ("grill", "grille"),
    ("grays", "graze"),
    ("guessed", "guest"),
    ("hare", "hair"),
    ("hall", "haul"),
    ("hangar", "hanger"),
    ("heard", "herd"),
    ("hymn", "him"),
    ("idle", "idol"),
    ("in", "inn"),
    ("jam", "jamb"),
    ("kernel", "colonel"),
    ("lessen", "lesson"),
    ("links", "lynx"),
    ("muscle", "mussel"),
    ("naval", "navel"),
    ("none", "nun"),
    ("pail", "pale"),
    ("passed", "past"),
    ("patience", "patients"),
    ("pause", "paws"),
    ("pedal", "peddle"),
    ("peer", "pier"),
    ("prints", "prince"),
    ("principal", "principle"),
    ("profit", "prophet"),
    ("rap", "wrap"),
    ("ring", "wring"),
    ("root", "route"),
    ("scull", "skull"),
    ("seam", "seem"),
    ("shear", "sheer"),
    ("sleigh", "slay"),
    ("stair", "stare"),
    ("stationary", "stationery"),
    ("straight", "strait"),
    ("symbol", "cymbal"),
    ("tense", "tents"),
    ("waist", "waste"),
    ("wail", "whale"),
    ("waive", "wave"),
    ("weather", "whether"),
    ("which", "witch"),
    ("whose", "who's"),
    ("worn", "warn"),
    ("yoke", "yolk"),
)


class HomophoneIndex:
    """Immutable adjacency table built once from homophone groups."""

    def __init__(self, groups: Iterable[Iterable[str]] = DEFAULT_HOMOPHONE_GROUPS):
        adjacency: dict[str, set[str]] = {}
        for group in groups:
            # Matching strips apostrophes, so "they're" is also reachable as "theyre".
            lowered = [w.lower() for w in group]
            members = list(dict.fromkeys(lowered + [w.replace("'", "") for w in lowered]))
            for word in members:
                others = adjacency.setdefault(word, set())
                others.update(m for m in members if m != word)
        self._adjacency: dict[str, frozenset[str]] = {
            word: frozenset(others) for word, others in adjacency.items()
        }
        logger.debug("Homophone index built: %d words", len(self._adjacency))

    def __len__(self) -> int:
        return len(self._adjacency)

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and word.lower() in self._adjacency

    def homophones_of(self, word: str) -> frozenset[str]:
        return self._adjacency.get(word.lower(), frozenset())

    def are_homophones(self, a: str, b: str) -> bool:
        """True if *a* and *b* are the same word or sound alike (case-insensitive)."""
        lower_a = a.lower()
        lower_b = b.lower()
        if lower_a == lower_b:
            return True
        return lower_b in self._adjacency.get(lower_a, frozenset())


default_index = HomophoneIndex()
