import re
from dataclasses import dataclass, field
from typing import List, Optional

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

INTRO_ANSWERS = [
    "PRINT SERVERS ARE THE WEAKEST LINK",
    "PRINTSERVERSARETHEWEAKESTLINK",
]

TOTAL_LEVELS = 11


@dataclass(frozen=True)
class Puzzle:
    id: int
    type: str
    title: str
    mission_brief: str
    question: str
    answer: str
    hint: str
    acceptable_answers: List[str] = field(default_factory=list)


PUZZLES = [
    Puzzle(
        id=1,
        type="pattern",
        title="Intelligence Briefing",
        mission_brief="Analyze gold standard RFP requirements for Intelligent Print Automation.",
        question="Sort the intercepted intelligence into the correct categories.",
        answer="DOCUMENT_SORT",
        hint="MODERNIZE = Cloud/Security, CONSOLIDATE = Unified platform, AUTOMATE = AI/Workflows",
        acceptable_answers=["DOCUMENT_SORT"],
    ),
    Puzzle(
        id=2,
        type="network",
        title="Eliminate the Threat",
        mission_brief="Remove legacy print server infrastructure and build cloud-native architecture.",
        question="Build the correct architecture: Endpoint -> ? -> Printer",
        answer="CLOUD",
        hint="The flow is: Endpoint -> Cloud (TLS 443) -> Printer (Port 9100). No servers needed!",
        acceptable_answers=["CLOUD", "ARCHITECTURE"],
    ),
    Puzzle(
        id=3,
        type="pattern",
        title="Universal Compatibility Protocol",
        mission_brief="Verify platform compatibility across all systems and technologies.",
        question="Verify compatibility with 9 OS types and answer 6 questions.",
        answer="COMPATIBLE",
        hint="The platform is truly agnostic: every OS type, printer manufacturer and identity provider.",
        acceptable_answers=["COMPATIBLE", "AGNOSTIC"],
    ),
    Puzzle(
        id=4,
        type="interactive",
        title="Zero Trust Initialization",
        mission_brief="Activate zero-trust security architecture for Apex Industries.",
        question="Complete MFA authentication and deploy secure off-network printing architecture.",
        answer="ZEROTRUST",
        hint="MFA Code: 742963. Architecture: Remote User -> TLS -> Gateway -> Edge Service -> Printer",
        acceptable_answers=["ZEROTRUST", "ZERO_TRUST"],
    ),
    Puzzle(
        id=5,
        type="interactive",
        title="Certification Vault",
        mission_brief="Verify enterprise security certifications to unlock the compliance vault.",
        question="Match each certification to its requirement to unlock the vault.",
        answer="CERTIFICATIONS",
        hint="FedRAMP for federal, SOC 2 Type 2 for enterprise, ISO 27001 for global, ISO 42001 for AI.",
        acceptable_answers=["CERTIFICATIONS", "VAULT"],
    ),
    Puzzle(
        id=6,
        type="interactive",
        title="Secure Release Protocol",
        mission_brief="Deploy secure release printing and simplified scanning to prevent document theft.",
        question="Demonstrate MFD authentication, secure release, and scan to cloud.",
        answer="SECURE_RELEASE",
        hint="Complete all three auth methods, print all jobs, and scan to OneDrive.",
        acceptable_answers=["SECURE_RELEASE", "PULL_PRINT"],
    ),
    Puzzle(
        id=7,
        type="interactive",
        title="Guest Infiltration Prevention",
        mission_brief="Enable secure guest printing without compromising network security.",
        question="Complete the Web Print workflow and verification quiz.",
        answer="WEB_PRINT",
        hint="Web Print requires no software installation and works from any browser, on or off network.",
        acceptable_answers=["WEB_PRINT", "GUEST_PRINT"],
    ),
    Puzzle(
        id=8,
        type="interactive",
        title="AI Management Deployment",
        mission_brief="Deploy AI-powered intelligent management to automate print tasks.",
        question="Interact with AI agent and identify automation opportunities.",
        answer="AI_MANAGEMENT",
        hint="AI can automate driver updates, dynamic deployment, and self-service workflows.",
        acceptable_answers=["AI_MANAGEMENT", "AI_AUTOMATION"],
    ),
    Puzzle(
        id=9,
        type="interactive",
        title="Legacy System Analysis",
        mission_brief="Analyze legacy output management to understand the complexity before consolidation.",
        question="Identify teams, analyze architecture, calculate costs, and find problems.",
        answer="LEGACY_ANALYSIS",
        hint="Two teams (backend/frontend), 10 servers, $18K-$50K/year in costs.",
        acceptable_answers=["LEGACY_ANALYSIS", "LEGACY"],
    ),
    Puzzle(
        id=10,
        type="interactive",
        title="Unified Output Platform",
        mission_brief="Consolidate all backend and frontend printing onto one output platform.",
        question="Configure the output service, build architecture, and test failover.",
        answer="UNIFIED_OUTPUT",
        hint="4 steps: Routing -> Output Service -> Edge Service -> EHR/ERP. Both flows use same Edge Service.",
        acceptable_answers=["UNIFIED_OUTPUT", "VASION_OUTPUT"],
    ),
    Puzzle(
        id=11,
        type="final",
        title="Final Transmission",
        mission_brief="Decrypt this final message to complete your mission.",
        question="NJTTJPO DPNQMFUF",
        answer="MISSION COMPLETE",
        hint="Caesar cipher, shift back by 1.",
        acceptable_answers=["MISSION COMPLETE", "MISSIONCOMPLETE"],
    ),
]

PUZZLES_BY_ID = {puzzle.id: puzzle for puzzle in PUZZLES}


def get_puzzle(puzzle_id: int) -> Optional[Puzzle]:
    return PUZZLES_BY_ID.get(puzzle_id)


def normalize_answer(answer: str) -> str:
    """Uppercase, trim and collapse runs of whitespace into one space."""
    return re.sub(r"\s+", " ", answer.upper().strip())


def check_answer(user_answer: str, correct_answer: str, alternatives: Optional[List[str]] = None) -> bool:
    normalized = normalize_answer(user_answer)

    if normalized == normalize_answer(correct_answer):
        return True

    if alternatives:
        return any(normalized == normalize_answer(alt) for alt in alternatives)

    return False


def validate_answer(puzzle_id: int, answer: str) -> bool:
    puzzle = get_puzzle(puzzle_id)
    if puzzle is None:
        return False
    return check_answer(answer, puzzle.answer, puzzle.acceptable_answers)


def validate_intro_puzzle(answer: str) -> bool:
    """The intro screen cipher decodes to PRINT SERVERS ARE THE WEAKEST LINK."""
    normalized = normalize_answer(answer)
    return any(normalized == normalize_answer(acceptable) for acceptable in INTRO_ANSWERS)


def decrypt_caesar(text: str, shift: int) -> str:
    chars = []
    for char in text:
        if "A" <= char <= "Z" or "a" <= char <= "z":
            base = ord("A") if char.isupper() else ord("a")
            shifted = (ord(char) - base - shift + 26) % 26 + base
            chars.append(chr(shifted))
        else:
            chars.append(char)
    return "".join(chars)


def is_valid_email(email) -> bool:
    return isinstance(email, str) and bool(EMAIL_PATTERN.match(email))
