from typing import Optional


SCAM_DETECTION_SYSTEM_PROMPT = (
    "You are ScamShield, an expert cybersecurity analyst specializing in scam and fraud "
    "detection. You analyze content submitted by users to determine if it represents a "
    "scam, phishing attempt, or other fraudulent activity.\n\n"
    "For every analysis, you MUST respond with valid JSON (no markdown) matching this exact schema:\n"
    "{\n"
    '  "risk_score": <integer 0-100>,\n'
    '  "risk_level": "SAFE" | "LOW_RISK" | "SUSPICIOUS" | "LIKELY_SCAM" | "CONFIRMED_SCAM",\n'
    '  "confidence": <float 0.0-1.0>,\n'
    '  "scam_type": "PHISHING" | "ADVANCE_FEE" | "ROMANCE" | "TECH_SUPPORT" | "INVESTMENT" | '
    '"LOTTERY" | "IMPERSONATION" | "EMPLOYMENT" | "CRYPTO" | "SHOPPING" | "CHARITY" | '
    '"GOVERNMENT" | "SUBSCRIPTION" | "SMS_SMISHING" | "SOCIAL_ENGINEERING" | "MALWARE" | '
    '"OTHER" | null,\n'
    '  "scam_sub_type": <more specific classification or null>,\n'
    '  "indicators": [\n'
    '    {"type": "red_flag" | "trust_signal", "text": <description>, "weight": <float 0.0-1.0>}\n'
    "  ],\n"
    '  "explanation": <clear, non-technical explanation for the user in 2-3 sentences>,\n'
    '  "recommendations": [<actionable recommendation>, ...]\n'
    "}\n\n"
    "Risk level thresholds:\n"
    "- SAFE: 0-15 (clearly legitimate content)\n"
    "- LOW_RISK: 16-35 (mostly safe with minor concerns)\n"
    "- SUSPICIOUS: 36-60 (unclear, exercise caution)\n"
    "- LIKELY_SCAM: 61-85 (strong indicators of fraud)\n"
    "- CONFIRMED_SCAM: 86-100 (matches known scam patterns)\n\n"
    "Guidelines:\n"
    "- Err on the side of caution; a false positive is better than a missed scam\n"
    "- Look for urgency language, generic greetings, suspicious URLs, requests for personal "
    "info, too-good-to-be-true offers, impersonation of trusted brands, and grammatical "
    "errors in official-looking messages\n"
    "- Trust signals include personalized content, verified sender domains, consistent "
    "branding and no urgency pressure\n"
    "- Give specific, actionable recommendations the user can follow right now\n"
    "- Keep explanations clear and non-technical; the user may not be tech-savvy\n"
    "Set confidence lower if the content is ambiguous or lacks clear signals."
)


def build_text_prompt(text: str) -> str:
    return (
        "Analyze the following text for potential scam or fraud indicators. The user "
        "received this content and wants to know if it's safe.\n\n"
        "USER-SUBMITTED CONTENT:\n"
        "---\n"
        f"{text}\n"
        "---\n\n"
        "Analyze this content and respond with the JSON schema specified in your instructions."
    )


def build_url_prompt(url: str, threat_context: Optional[str] = None) -> str:
    prompt = (
        "Analyze the following URL for potential phishing, scam, or security threats.\n\n"
        f"URL: {url}"
    )

    if threat_context:
        prompt += f"\n\nTHREAT INTELLIGENCE CONTEXT:\n{threat_context}"

    prompt += (
        "\n\nConsider:\n"
        "- Is the domain name suspicious or mimicking a legitimate brand?\n"
        "- Does the URL structure suggest phishing (unusual subdomains, misspellings, "
        "excessive parameters)?\n"
        "- Are there any known threat indicators from the intelligence data provided?\n\n"
        "Analyze this URL and respond with the JSON schema specified in your instructions."
    )
    return prompt


def build_image_prompt() -> str:
    return (
        "Analyze this image for potential scam or fraud indicators. The user uploaded this "
        "screenshot because they suspect it may be related to a scam.\n\n"
        "Look for:\n"
        "- Phishing emails or messages impersonating legitimate companies\n"
        "- Fake invoices, receipts, or payment requests\n"
        "- Suspicious URLs visible in the image\n"
        "- Social engineering tactics (urgency, threats, too-good-to-be-true offers)\n"
        "- Fake security alerts or account warnings\n"
        "- Impersonation of government agencies, banks, or tech companies\n\n"
        "Analyze the image content and respond with the JSON schema specified in your instructions."
    )


def build_email_prompt(email_content: str) -> str:
    return (
        "Analyze the following email content for potential phishing or scam indicators.\n\n"
        "EMAIL CONTENT:\n"
        "---\n"
        f"{email_content}\n"
        "---\n\n"
        "Pay special attention to:\n"
        "- Sender address legitimacy\n"
        "- Urgency or threatening language\n"
        "- Requests for personal information, passwords, or financial data\n"
        "- Links that don't match the claimed sender\n"
        "- Generic greetings vs. personalized content\n"
        "- Grammar and spelling quality relative to the claimed sender\n"
        "- Mismatched reply-to addresses\n\n"
        "Analyze this email and respond with the JSON schema specified in your instructions."
    )
