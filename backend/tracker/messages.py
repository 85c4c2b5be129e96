"""
Discord message rendering.
Score-update announcements for a freshly merged character plus its Raider.IO
profile, and the tracked-characters leaderboard.
"""
from __future__ import annotations

from typing import Optional

from shared.models.domain import Character, EmbedField, RaiderIOProfile, RichContent, Run

from providers.raiderio import current_season, latest_run

RAIDERIO_CHARACTER_URL = "https://raider.io/characters/{region}/{realm}/{name}"
CLASS_ICON_BASE = "https://render.worldofwarcraft.com/us/icons/18/"

SCORES_TITLE = "Tracked Characters"
SCORES_COLOUR = 2326507
OVERFLOW_NOTE = "\nToo many characters tracked - use `list` instead."
# Discord embed limits
MAX_FIELD_CHARS = 1024
MAX_FIELDS = 25

# class name -> (icon file, embed colour)
CLASS_STYLE: dict[str, tuple[str, int]] = {
    "Warrior": ("class_1.jpg", 13015917),
    "Paladin": ("class_2.jpg", 16026810),
    "Hunter": ("class_3.jpg", 11195250),
    "Rogue": ("class_4.jpg", 16774248),
    "Priest": ("class_5.jpg", 16777215),
    "Death Knight": ("class_6.jpg", 12852794),
    "Shaman": ("class_7.jpg", 28893),
    "Mage": ("class_8.jpg", 4179947),
    "Warlock": ("class_9.jpg", 8882414),
    "Monk": ("class_10.jpg", 2326507),
    "Druid": ("class_11.jpg", 16743434),
    "Demon Hunter": ("class_12.jpg", 10694857),
    # No evoker icon is published under this path
    "Evoker": ("class_2.jpg", 3380095),
}
_DEFAULT_STYLE = ("class_2.jpg", 0)


def _class_key(class_name: str) -> str:
    # Raider.IO says "Death Knight", Blizzard slugs say "DeathKnight"
    compact = class_name.replace(" ", "").lower()
    for key in CLASS_STYLE:
        if key.replace(" ", "").lower() == compact:
            return key
    return ""


def class_icon(class_name: str) -> str:
    return CLASS_ICON_BASE + CLASS_STYLE.get(_class_key(class_name), _DEFAULT_STYLE)[0]


def class_colour(class_name: str) -> int:
    return CLASS_STYLE.get(_class_key(class_name), _DEFAULT_STYLE)[1]


def _role_score_lines(character: Character) -> list[str]:
    lines = []
    for role, score in (("Tank", character.tank_score), ("Healer", character.heal_score), ("DPS", character.dps_score)):
        if score != 0:
            lines.append(f"**{role} Score** {score:.2f}")
    return lines


def _rank_lines(profile: RaiderIOProfile) -> list[str]:
    if not profile.mythic_plus_scores_by_season:
        return []
    scores = current_season(profile).scores
    ranks = profile.mythic_plus_ranks
    lines = []
    for role, score, rank in (
        ("Tank", scores.tank, ranks.tank),
        ("Healer", scores.healer, ranks.healer),
        ("DPS", scores.dps, ranks.dps),
    ):
        if score != 0:
            lines.append(f"**{role}**: #{rank.realm} Realm - #{rank.world} Overall")
    return lines


def _run_lines(run: Optional[Run]) -> list[str]:
    if run is None:
        return []
    lines = [
        "**--- Last Run ---**",
        f"**Dungeon**: {run.dungeon}",
        f"**Level**: {run.mythic_level}",
        f"**Result**: +{run.num_keystone_upgrades}",
        f"**Points**: {run.score:.2f}",
    ]
    if run.url:
        lines.append(f"[More Info]({run.url})")
    return lines


def build_description(character: Character, profile: RaiderIOProfile, run: Optional[Run]) -> str:
    overall = profile.mythic_plus_ranks.overall
    lines = [
        *_role_score_lines(character),
        "",
        "**--- Ranks ---**",
        f"**#{overall.realm} Realm - #{overall.world} Overall**",
        *_rank_lines(profile),
    ]
    run_lines = _run_lines(run)
    if run_lines:
        lines.append("")
        lines.extend(run_lines)
    return "\n".join(lines)


def build_score_update_message(character: Character, profile: RaiderIOProfile, old_score: float) -> RichContent:
    """Announcement for a character whose overall score moved from old_score."""
    run = latest_run(profile)
    verb = "increased" if character.overall_score > old_score else "changed"
    link = f"[{character.display_name}]({profile.profile_url})" if profile.profile_url else character.display_name

    return RichContent(
        content=f"{link} {verb} their score from {old_score:.2f} to {character.overall_score:.2f}",
        title=f"{character.overall_score:.2f} Overall Mythic+ Score",
        url=profile.profile_url or None,
        description=build_description(character, profile, run),
        color=class_colour(character.class_name),
        image_url=(run.background_image_url or None) if run else None,
        thumbnail_url=profile.thumbnail_url or None,
        author_name=f"{character.display_name} ({character.class_name})",
        author_icon_url=class_icon(character.class_name),
    )


def _column_pair(names: str, scores: str, first: bool) -> list[EmbedField]:
    return [
        EmbedField(name="Character" if first else "\u200b", value=names, inline=True),
        EmbedField(name="Score" if first else "\u200b", value=scores, inline=True),
    ]


def build_scores_message(characters: list[Character], region: str = "us") -> RichContent:
    """
    Leaderboard of tracked characters in the order given.

    Rows are split across inline name/score field pairs so no field exceeds
    MAX_FIELD_CHARS; once the embed would run out of fields the list is cut
    short with OVERFLOW_NOTE.
    """
    if not characters:
        return RichContent(title=SCORES_TITLE, color=SCORES_COLOUR, description="No characters tracked yet.")

    fields: list[EmbedField] = []
    names = scores = ""
    budget = MAX_FIELD_CHARS - len(OVERFLOW_NOTE)
    for i, c in enumerate(characters, start=1):
        url = RAIDERIO_CHARACTER_URL.format(region=region, realm=c.realm, name=c.name)
        row = f"{i}) [{c.display_name}]({url})\n"
        if names and len(names) + len(row) > budget:
            # the current pair plus one more must still fit
            if len(fields) + 4 > MAX_FIELDS:
                names += OVERFLOW_NOTE
                break
            fields.extend(_column_pair(names, scores, first=not fields))
            names = scores = ""
        names += row
        scores += f"{c.overall_score:.2f}\n"
    fields.extend(_column_pair(names, scores, first=not fields))

    return RichContent(title=SCORES_TITLE, color=SCORES_COLOUR, fields=fields)
