from typing import List, Optional, Sequence

from ..exceptions import NotFoundError
from ..models.prompt import PromptTemplate

YOUTUBE_TITLE = PromptTemplate(
    id="youtube-title",
    title="YouTube title",
    template="""Your role is to generate three titles for a YouTube video.

Below you will receive a transcription of the video. Use it to write the titles.

Titles must be at most 60 characters long.
Titles must be catchy and attractive to maximize clicks.

Return ONLY the three titles as a list, like in the example below:
'''
- Title 1
- Title 2
- Title 3
'''

Transcription:
'''
{transcription}
'''""",
)

YOUTUBE_DESCRIPTION = PromptTemplate(
    id="youtube-description",
    title="YouTube description",
    template="""Your role is to write a short description for a YouTube video.

Below you will receive a transcription of the video. Use it to write the description.

The description must be at most 80 words long, in first person, covering the main points of the video.

Use attention-grabbing words that keep the reader interested.

At the end of the description, add a list of 3 to 10 lowercase hashtags containing keywords from the video.

The output must follow this format:
'''
Description.

#hashtag1 #hashtag2 #hashtag3 ...
'''

Transcription:
'''
{transcription}
'''""",
)

DEFAULT_PROMPTS = (YOUTUBE_TITLE, YOUTUBE_DESCRIPTION)

class PromptCatalog:
    def __init__(self, prompts: Optional[Sequence[PromptTemplate]] = None):
        self._prompts = tuple(DEFAULT_PROMPTS if prompts is None else prompts)

    def list(self) -> List[PromptTemplate]:
        return list(self._prompts)

    def get(self, prompt_id: str) -> PromptTemplate:
        for prompt in self._prompts:
            if prompt.id == prompt_id:
                return prompt
        raise NotFoundError("Prompt not found", {"prompt_id": prompt_id})
