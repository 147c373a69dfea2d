"""Claim catalogue: the true source facts a tuned draft may cite as evidence."""

from dataclasses import asdict, dataclass

from .models import ResumeData
from .text import sanitize


@dataclass(frozen=True)
class Claim:
    id: str
    text: str


def build_claims(resume: ResumeData) -> list[Claim]:
    """Number every bullet, the summary, each skill and each education entry.

    Ids are 1-based (``exp-1-2`` is the second bullet of the first role).
    Claims whose text is empty are skipped.
    """
    claims: list[Claim] = []
    for i, entry in enumerate(resume.experience, start=1):
        for j, bullet in enumerate(entry.bullets, start=1):
            claims.append(Claim(f"exp-{i}-{j}", sanitize(bullet)))
    for i, project in enumerate(resume.projects, start=1):
        for j, bullet in enumerate(project.bullets, start=1):
            claims.append(Claim(f"proj-{i}-{j}", sanitize(bullet)))
    claims.append(Claim("summary", sanitize(resume.metadata.summary)))
    for i, skill in enumerate(resume.skills, start=1):
        claims.append(Claim(f"skill-{i}", sanitize(f"{skill.name} {skill.category}")))
    for i, entry in enumerate(resume.education, start=1):
        text = " ".join(sanitize(part) for part in (entry.degree, entry.field, entry.institution))
        claims.append(Claim(f"edu-{i}", sanitize(text)))
    return [claim for claim in claims if claim.text]


def claim_ids(claims: list[Claim]) -> set[str]:
    return {claim.id for claim in claims}


def claims_for_prompt(claims: list[Claim]) -> list[dict]:
    return [asdict(claim) for claim in claims]
