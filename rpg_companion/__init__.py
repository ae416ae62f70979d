"""RPG Companion: character creation prompts, encounter profiles, generation routing."""
