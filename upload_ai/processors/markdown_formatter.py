from datetime import datetime
from typing import Optional

class MarkdownFormatter:
    def __init__(self, output_file: str = "generations.md"):
        self.output_file = output_file

    def format(self, video_id: str, title: str, text: str, timestamp: Optional[datetime] = None) -> str:
        timestamp = (timestamp or datetime.now()).strftime("%Y-%m-%d %H:%M")
        return (
            f"# {title} (ID: {video_id})\n"
            f"*Generated on {timestamp}*\n\n"
            f"{text.strip()}\n\n---\n\n"
        )

    def prepend_generation(self, video_id: str, title: str, text: str):
        """Prepends a generated text to the markdown file"""
        new_content = self.format(video_id, title, text)

        # Read existing content if file exists
        existing_content = ""
        try:
            with open(self.output_file, "r", encoding="utf-8") as f:
                existing_content = f.read()
        except FileNotFoundError:
            pass

        # Write new content followed by existing content
        with open(self.output_file, "w", encoding="utf-8") as f:
            f.write(new_content + existing_content)
