"""Markdown rendering of character cards, worldbooks and progress reports."""

from cardsmith.memory.progress import CharacterData, TaskProgress, WorldbookEntry
from cardsmith.utils.validation import truncate


def format_character_card(character: CharacterData) -> str:
    """Render a card; optional sections appear only when filled in."""
    output = f"**{character.name}**\n\n"
    output += f"**Description:** {character.description}\n\n"
    output += f"**Personality:** {character.personality}\n\n"

    if character.scenario:
        output += f"**Scenario:** {character.scenario}\n\n"
    if character.first_mes:
        output += f"**First Message:** {character.first_mes}\n\n"
    if character.mes_example:
        output += f"**Example Messages:** {character.mes_example}\n\n"
    if character.tags:
        output += f"**Tags:** {', '.join(character.tags)}\n\n"

    return output


def format_worldbook_entries(
    entries: list[WorldbookEntry], max_entries: int = 5, content_chars: int = 200
) -> str:
    """Render the first *max_entries* entries and a count of the rest."""
    output = ""
    for index, entry in enumerate(entries[:max_entries], start=1):
        output += f"**{index}. {entry.comment}**\n"
        output += f"Keywords: {', '.join(entry.key)}\n"
        output += f"{truncate(entry.content, content_chars)}\n\n"

    if len(entries) > max_entries:
        output += f"... and {len(entries) - max_entries} more entries\n"

    return output


def format_progress_report(
    progress: TaskProgress, description_chars: int = 100, recent_entries: int = 3
) -> str:
    report = "📊 **Generation Progress Report**\n\n"

    if progress.character_data is not None:
        report += "✅ **Character Card**: COMPLETE\n"
        report += f"   - Name: {progress.character_data.name}\n"
        report += (
            f"   - Description: "
            f"{truncate(progress.character_data.description, description_chars)}\n\n"
        )
    else:
        report += "❌ **Character Card**: NOT GENERATED\n\n"

    if progress.has_worldbook:
        entries = progress.worldbook_data
        report += f"✅ **Worldbook**: COMPLETE ({len(entries)} entries)\n"
        report += "   - Recent entries:\n"
        for entry in entries[:recent_entries]:
            report += f"     * {entry.comment}\n"
        if len(entries) > recent_entries:
            report += f"     * ... and {len(entries) - recent_entries} more\n"
    else:
        report += "❌ **Worldbook**: NOT GENERATED\n"

    metadata = progress.generation_metadata
    report += f"\n🔧 **Tools Used**: {', '.join(metadata.tools_used) or 'none'}\n"
    report += f"📈 **Iterations**: {metadata.total_iterations}\n"
    return report
