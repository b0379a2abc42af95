import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv

from cv_tailor.app.service import GenerationService
from cv_tailor.config.env_validation import EnvironmentValidationError, EnvironmentValidator
from cv_tailor.errors import GenerationFailedError
from cv_tailor.graph.state import CvText, GenerationOptions, PipelineStage, ProfileSource, to_wire
from cv_tailor.llm.provider import get_inference_client
from cv_tailor.tools.job_text import parse_job_description
from cv_tailor.utils.io import ensure_dir, read_text_auto, save_bytes, save_json, timestamp_filename

app = typer.Typer(help="CV Tailor CLI - fact-verified CVs and cover letters")


def _echo_progress(message: str, stage: PipelineStage) -> None:
    typer.echo(f"   → {message}")


@app.command()
def generate(
    profile: Optional[Path] = typer.Option(None, "--profile", help="Path to profile text (e.g. LinkedIn export as .txt)"),
    cv: Optional[List[Path]] = typer.Option(None, "--cv", help="Path to an existing CV as text; repeat for several"),
    job: Path = typer.Option(..., "--job", help="Path to the job description text"),
    cover_letter: bool = typer.Option(True, "--cover-letter/--no-cover-letter", help="Also write a cover letter"),
    provider: str = typer.Option("auto", "--provider", help="LLM provider: auto|anthropic|gemini|mistral (default: auto)"),
    outdir: str = typer.Option("outputs", "--outdir", help="Output directory"),
):
    """Generate a tailored CV (and cover letter) for a job posting."""

    load_dotenv()
    cv = cv or []

    typer.echo("🚀 Starting CV tailoring...")
    typer.echo(f"   Job: {job}")
    typer.echo(f"   CVs: {len(cv)}")
    typer.echo(f"   Provider: {provider}")

    typer.echo("🔑 Validating environment...")
    try:
        EnvironmentValidator.validate_environment()
    except EnvironmentValidationError as e:
        typer.echo(f"   ❌ {e}", err=True)
        raise typer.Exit(1)

    try:
        profile_text = read_text_auto(profile) if profile else ""
        cv_texts = [CvText(filename=path.name, text=read_text_auto(path)) for path in cv]
        job_posting = parse_job_description(read_text_auto(job))
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"❌ Error reading input: {e}", err=True)
        raise typer.Exit(1)

    typer.echo("🧠 Initializing LLM provider...")
    try:
        inference = get_inference_client(provider)
    except Exception as e:
        typer.echo(f"   ❌ Error initializing LLM provider: {e}", err=True)
        raise typer.Exit(1)

    service = GenerationService(inference)

    typer.echo("⚡ Executing tailoring pipeline...")
    try:
        result = asyncio.run(service.generate(
            ProfileSource(raw_text=profile_text),
            cv_texts,
            job_posting,
            GenerationOptions(generate_cover_letter=cover_letter),
            on_progress=_echo_progress,
        ))
    except GenerationFailedError as e:
        typer.echo(f"❌ {e.user_message}", err=True)
        raise typer.Exit(1)

    output_dir = ensure_dir(outdir)
    artifacts_dir = ensure_dir(output_dir / "artifacts")
    timestamp = timestamp_filename()

    typer.echo("💾 Saving documents...")
    for doc_type in ("cv", "cover_letter"):
        document = service.get_document(result.session_id, doc_type)
        if document is None:
            continue
        content, filename = document
        save_bytes(output_dir / filename, content)
        typer.echo(f"   📄 {output_dir / filename}")

    save_json(artifacts_dir / f"cv_content_{timestamp}.json", to_wire(result.cv))
    if result.cover_letter is not None:
        save_json(artifacts_dir / f"cover_letter_{timestamp}.json", to_wire(result.cover_letter))
    save_json(artifacts_dir / f"analysis_{timestamp}.json", result.analysis_summary)
    save_json(artifacts_dir / f"execution_logs_{timestamp}.json", {
        "sessionId": result.session_id,
        "region": result.region.value,
        "progress": result.progress,
        "fallbacks": result.fallbacks,
    })
    typer.echo(f"   📜 Artifacts: {artifacts_dir}")

    gap = result.analysis_summary["gapAnalysis"]
    typer.echo("")
    typer.echo("🎉 Tailoring completed successfully!")
    typer.echo(f"   • Region: {result.region.value}")
    typer.echo(f"   • Skills match: {gap['matchPercentage']}%")
    if result.fallbacks:
        typer.echo(f"   ⚠️  Fallback content used for: {', '.join(result.fallbacks)}")


@app.command("parse-job")
def parse_job(
    job: Path = typer.Argument(..., help="Path to the job description text"),
):
    """Show the title, company, location and keywords detected in a job posting."""
    try:
        posting = parse_job_description(read_text_auto(job))
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"❌ Error reading input: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Title: {posting.title or '-'}")
    typer.echo(f"Company: {posting.company or '-'}")
    typer.echo(f"Location: {posting.location or '-'}")
    typer.echo(f"Keywords: {', '.join(posting.keywords) or '-'}")


if __name__ == "__main__":
    app()
