# utils/suggestions.py
"""
Best-effort profile suggestions from a free-text member name.

These are substring guesses used to pre-fill the add-member form. They are
often wrong and must never feed the membership or capacity checks; the user
confirms or overrides every suggested field.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

BASE_HOURLY_RATE = 1800
WORKING_DAYS_PER_MONTH = 22
HOURS_PER_DAY = 8

# (keywords, role, experience, hourly rate)
_ROLE_RULES: Sequence[Tuple[Tuple[str, ...], str, str, int]] = (
    (("manager", "lead", "head"), "manager", "senior", 2500),
    (("admin", "director", "ceo"), "admin", "lead", 3000),
    (("design", "ui", "ux"), "designer", "mid", 2000),
)

_DOMAIN_RULES: Sequence[Tuple[Tuple[str, ...], str, List[str]]] = (
    (("angular", "frontend", "react"), "Angular", ["Angular", "TypeScript", "RxJS", "Material UI", "HTML/CSS"]),
    (("java", "backend", "spring"), "Java", ["Java", "Spring Boot", "Hibernate", "Maven", "JUnit"]),
    (("mobile", "maui", "flutter"), "Maui", [".NET MAUI", "C#", "Xamarin", "MVVM", "SQLite"]),
    (("test", "qa", "quality"), "Testing", ["Selenium", "Jest", "Cypress", "JUnit", "TestNG"]),
    (("devops", "deploy", "infra"), "Implementation", ["DevOps", "CI/CD", "Docker", "Kubernetes", "Jenkins"]),
    (("data", "database", "sql"), "Database", ["PostgreSQL", "MongoDB", "Redis", "SQL Server", "Oracle"]),
    (("market", "brand", "social"), "Marketing",
     ["Digital Marketing", "Adobe Creative Suite", "Analytics", "SEO", "Social Media"]),
    (("hr", "human", "talent"), "HR", ["Recruitment", "HRIS", "Performance Management", "Training", "Compliance"]),
    (("system", "admin", "ops"), "System Administration", ["Linux", "AWS", "Docker", "Monitoring", "Security"]),
)
_DEFAULT_DOMAIN = ("Angular", ["Angular", "TypeScript", "JavaScript", "HTML/CSS", "Node.js"])

_DEPARTMENT_RULES: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("vnit", "tech", "dev"), "VNIT"),
    (("dinshaw", "finance", "bank"), "Dinshaw"),
    (("hospy", "health", "medical"), "Hospy"),
    (("pharma", "drug", "medicine"), "Pharma"),
)
_DEFAULT_DEPARTMENT = "VNIT"

# (keywords, experience, rate multiplier)
_SENIORITY_RULES: Sequence[Tuple[Tuple[str, ...], str, float]] = (
    (("senior", "sr", "lead"), "senior", 1.3),
    (("junior", "jr", "entry"), "junior", 0.7),
    (("architect", "principal", "expert"), "lead", 1.5),
)


@dataclass
class ProfileSuggestion:
    email: str
    role: str = "developer"
    domain: str = ""
    department: str = ""
    experience: str = "mid"
    hourly_rate: int = BASE_HOURLY_RATE
    skills: List[str] = field(default_factory=list)
    budget: int = 0


def _first_match(text: str, rules):
    return next((rule for rule in rules if any(k in text for k in rule[0])), None)


def suggest_profile(name: str, availability: int = 100,
                    email_domain: str = "company.com") -> Optional[ProfileSuggestion]:
    if not name or len(name.strip()) < 2:
        return None

    lowered = name.strip().lower()
    parts = lowered.split()
    s = ProfileSuggestion(email=f"{parts[0]}.{parts[-1]}@{email_domain}")

    role_rule = _first_match(lowered, _ROLE_RULES)
    if role_rule:
        _, s.role, s.experience, s.hourly_rate = role_rule

    domain_rule = _first_match(lowered, _DOMAIN_RULES)
    s.domain, skills = (domain_rule[1], domain_rule[2]) if domain_rule else _DEFAULT_DOMAIN
    s.skills = list(skills)

    dept_rule = _first_match(lowered, _DEPARTMENT_RULES)
    s.department = dept_rule[1] if dept_rule else _DEFAULT_DEPARTMENT

    seniority = _first_match(lowered, _SENIORITY_RULES)
    if seniority:
        _, s.experience, multiplier = seniority
        s.hourly_rate = int(s.hourly_rate * multiplier + 0.5)

    s.budget = int(s.hourly_rate * HOURS_PER_DAY * WORKING_DAYS_PER_MONTH * availability / 100 + 0.5)
    return s
