#!/usr/bin/env python3
import argparse
import asyncio
import sys

from tqdm.auto import tqdm

from upload_ai.client.api_client import UploadAIClient
from upload_ai.client.workflow import STATUS_MESSAGES, UploadStatus, VideoInputWorkflow
from upload_ai.exceptions import NotFoundError, UploadAIError
from upload_ai.client.audio_extractor import FFmpegAudioExtractor
from upload_ai.processors.markdown_formatter import MarkdownFormatter
from upload_ai.utils.config import load_config

STEPS = [UploadStatus.CONVERTING, UploadStatus.UPLOADING, UploadStatus.GENERATING]


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Upload a video's audio, transcribe it and generate text from the transcription."
    )
    parser.add_argument("videos", nargs="+", help="video files to upload")
    parser.add_argument("--prompt", default="",
                        help="keywords mentioned in the video, separated by commas")
    parser.add_argument("--template", default=None,
                        help="prompt id from the catalog (e.g. youtube-title) or a template containing {transcription}")
    parser.add_argument("--temperature", type=float, default=0.5)
    parser.add_argument("--api-url", default=None)
    parser.add_argument("--output-dir", default=None, help="where extracted audio is written")
    return parser.parse_args(argv)


def make_progress_bars():
    """One bar per workflow stage, completed as the workflow advances"""
    bars = {
        status: tqdm(total=1, desc=STATUS_MESSAGES[status], leave=True, position=i, bar_format='{desc} {bar}')
        for i, status in enumerate(STEPS)
    }

    def on_status(old_status, new_status):
        if old_status in bars and new_status is not UploadStatus.WAITING:
            bars[old_status].n = bars[old_status].total
            bars[old_status].refresh()
        elif old_status in bars:
            bars[old_status].set_description(f"Failed: {STATUS_MESSAGES[old_status]}")
            bars[old_status].refresh()

    return bars, on_status


async def resolve_template(api, template):
    """Maps a catalog id to its template; anything with a placeholder or spaces is a custom prompt"""
    if template is None or "{transcription}" in template:
        return template, "Custom prompt"
    prompts = await api.list_prompts()
    for prompt in prompts:
        if prompt.id == template:
            return prompt.template, prompt.title
    if template.split() == [template]:
        known = ", ".join(p.id for p in prompts)
        raise NotFoundError(f"Unknown prompt id '{template}' (available: {known})")
    return template, "Custom prompt"


async def process_video(workflow, video_path, prompt):
    bars, on_status = make_progress_bars()
    workflow.add_listener(on_status)
    try:
        return await workflow.run(video_path, prompt)
    finally:
        workflow.remove_listener(on_status)
        for bar in bars.values():
            bar.close()


async def run(args):
    config = load_config()
    formatter = MarkdownFormatter(output_file=config.generations_file)
    extractor = FFmpegAudioExtractor(output_dir=args.output_dir)

    results = []
    async with UploadAIClient(base_url=args.api_url or config.api_url) as api:
        template, title = await resolve_template(api, args.template)
        workflow = VideoInputWorkflow(extractor, api)

        total_videos = len(args.videos)
        for i, video_path in enumerate(args.videos, 1):
            if total_videos > 1:
                print(f"\nVideo {i} of {total_videos}:")
            try:
                video_id = await process_video(workflow, video_path, args.prompt)
            except UploadAIError as e:
                print(f"\nError processing video {video_path}: {e}")
                continue

            if template is None:
                results.append(video_id)
                continue

            print()
            chunks = []
            try:
                async for chunk in workflow.generate(template, args.temperature):
                    chunks.append(chunk)
                    print(chunk, end="", flush=True)
            except UploadAIError as e:
                print(f"\nError generating text for {video_path}: {e}")
                continue
            print()
            formatter.prepend_generation(video_id, title, "".join(chunks))
            results.append(video_id)

    return results


def main(argv=None):
    args = parse_args(argv)
    try:
        results = asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nProcess interrupted by user. Exiting gracefully.")
        sys.exit(0)
    except UploadAIError as e:
        print(f"\n{e}")
        sys.exit(1)

    if results:
        print(f"\nSuccessfully processed {len(results)} of {len(args.videos)} videos.")
        if args.template is not None:
            print(f"Generated text has been added to {load_config().generations_file}")
    else:
        print("\nNo videos processed successfully.")
        sys.exit(1)


if __name__ == "__main__":
    main()
