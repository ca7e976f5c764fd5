"""Static code analysis rules and the extension-to-language table."""

import re

from anchor.rules.base import Rule, Severity

JS_TS = ("javascript", "typescript")

SAST_RULES: tuple[Rule, ...] = (
    # Injection
    Rule(
        id="sql-injection",
        name="SQL Injection",
        severity=Severity.CRITICAL,
        pattern=(
            r"(?:execute|query|raw|exec)\s*\(\s*[`'\"].*\$\{.*\}"
            r"|(?:execute|query|raw)\s*\(\s*.*\+.*['\"]"
        ),
        flags=re.IGNORECASE,
        message="Potential SQL Injection: User input concatenated into SQL query",
        cwe="CWE-89",
        owasp="A03:2021",
        languages=JS_TS,
    ),
    Rule(
        id="sql-injection-python",
        name="SQL Injection (Python)",
        severity=Severity.CRITICAL,
        pattern=(
            r"(?:execute|executemany|raw)\s*\(\s*f?[\"'].*\{.*\}"
            r"|(?:execute|cursor)\s*\(\s*.*%\s*\("
        ),
        flags=re.IGNORECASE,
        message="Potential SQL Injection: f-string or % formatting in SQL query",
        cwe="CWE-89",
        owasp="A03:2021",
        languages=("python",),
    ),
    Rule(
        id="xss-innerhtml",
        name="XSS via innerHTML",
        severity=Severity.HIGH,
        pattern=r"\.innerHTML\s*=\s*(?!['\"`]<)",
        message="Potential XSS: Dynamic content assigned to innerHTML",
        cwe="CWE-79",
        owasp="A03:2021",
        languages=JS_TS,
    ),
    Rule(
        id="xss-document-write",
        name="XSS via document.write",
        severity=Severity.HIGH,
        pattern=r"document\.write\s*\(",
        message="Potential XSS: document.write can execute arbitrary scripts",
        cwe="CWE-79",
        owasp="A03:2021",
        languages=JS_TS,
    ),
    Rule(
        id="xss-dangerously-set",
        name="XSS via dangerouslySetInnerHTML",
        severity=Severity.HIGH,
        pattern=r"dangerouslySetInnerHTML\s*=\s*\{\s*\{\s*__html:\s*(?!['\"]\s*['\"]\s*\})",
        message="Potential XSS: dangerouslySetInnerHTML with dynamic content",
        cwe="CWE-79",
        owasp="A03:2021",
        languages=("javascript", "typescript", "jsx", "tsx"),
    ),
    Rule(
        id="command-injection",
        name="Command Injection",
        severity=Severity.CRITICAL,
        pattern=r"(?:exec|spawn|execSync|spawnSync|execFile)\s*\(\s*(?:[`'\"].*\$\{|.*\+)",
        flags=re.IGNORECASE,
        message="Potential Command Injection: User input in shell command",
        cwe="CWE-78",
        owasp="A03:2021",
        languages=JS_TS,
    ),
    Rule(
        id="command-injection-python",
        name="Command Injection (Python)",
        severity=Severity.CRITICAL,
        pattern=(
            r"(?:os\.system|os\.popen|subprocess\.call|subprocess\.run|subprocess\.Popen)"
            r"\s*\(\s*f?[\"'].*\{|shell\s*=\s*True"
        ),
        flags=re.IGNORECASE,
        message="Potential Command Injection: User input in shell command",
        cwe="CWE-78",
        owasp="A03:2021",
        languages=("python",),
    ),
    Rule(
        id="path-traversal",
        name="Path Traversal",
        severity=Severity.HIGH,
        pattern=(
            r"(?:readFile|readFileSync|createReadStream|writeFile|writeFileSync|unlink|rmdir|mkdir|access)"
            r"\s*\(\s*(?:[`'\"].*\$\{|.*\+|req\.|request\.)"
        ),
        flags=re.IGNORECASE,
        message="Potential Path Traversal: User input in file path",
        cwe="CWE-22",
        owasp="A01:2021",
        languages=JS_TS,
    ),
    # Cryptography
    Rule(
        id="weak-crypto-md5",
        name="Weak Cryptography (MD5)",
        severity=Severity.MEDIUM,
        pattern=r"createHash\s*\(\s*['\"]md5['\"]\s*\)|hashlib\.md5|MD5\s*\(",
        flags=re.IGNORECASE,
        message="MD5 is cryptographically weak. Use SHA-256 or better",
        cwe="CWE-327",
        owasp="A02:2021",
    ),
    Rule(
        id="weak-crypto-sha1",
        name="Weak Cryptography (SHA1)",
        severity=Severity.MEDIUM,
        pattern=r"createHash\s*\(\s*['\"]sha1['\"]\s*\)|hashlib\.sha1|SHA1\s*\(",
        flags=re.IGNORECASE,
        message="SHA1 is cryptographically weak. Use SHA-256 or better",
        cwe="CWE-327",
        owasp="A02:2021",
    ),
    Rule(
        id="weak-random",
        name="Insecure Random",
        severity=Severity.MEDIUM,
        pattern=r"Math\.random\s*\(\s*\)",
        message=(
            "Math.random() is not cryptographically secure. "
            "Use crypto.randomBytes() for security purposes"
        ),
        cwe="CWE-330",
        owasp="A02:2021",
        languages=JS_TS,
    ),
    Rule(
        id="hardcoded-ip",
        name="Hardcoded IP Address",
        severity=Severity.LOW,
        pattern=r"['\"]\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}(?::\d+)?['\"]",
        message="Hardcoded IP address detected. Consider using configuration",
        cwe="CWE-547",
    ),
    # Code execution
    Rule(
        id="unsafe-deserialization",
        name="Unsafe Deserialization",
        severity=Severity.CRITICAL,
        pattern=r"(?:pickle\.loads?|yaml\.load|eval|unserialize)\s*\(",
        flags=re.IGNORECASE,
        message="Unsafe deserialization can lead to Remote Code Execution",
        cwe="CWE-502",
        owasp="A08:2021",
    ),
    Rule(
        id="eval-usage",
        name="Eval Usage",
        severity=Severity.HIGH,
        pattern=r"\beval\s*\(\s*(?!['\"][^'\"]*['\"]\s*\))",
        message="eval() with dynamic input can lead to code injection",
        cwe="CWE-95",
        owasp="A03:2021",
        languages=("javascript", "typescript", "python"),
    ),
    Rule(
        id="ssrf-potential",
        name="Potential SSRF",
        severity=Severity.HIGH,
        pattern=r"(?:fetch|axios|request|http\.get|urllib)\s*\(\s*(?:[`'\"].*\$\{|.*\+|req\.|request\.)",
        flags=re.IGNORECASE,
        message="Potential SSRF: User input used in URL",
        cwe="CWE-918",
        owasp="A10:2021",
    ),
    Rule(
        id="prototype-pollution",
        name="Prototype Pollution",
        severity=Severity.HIGH,
        pattern=r"\[.*\]\s*=\s*(?!null|undefined|false|true|\d)",
        message="Potential Prototype Pollution via dynamic property assignment",
        cwe="CWE-1321",
        languages=JS_TS,
    ),
    Rule(
        id="nosql-injection",
        name="NoSQL Injection",
        severity=Severity.HIGH,
        pattern=r"(?:find|findOne|update|delete|aggregate)\s*\(\s*\{[^}]*:\s*(?:req\.|request\.|params\.|body\.)",
        flags=re.IGNORECASE,
        message="Potential NoSQL Injection: User input in database query",
        cwe="CWE-943",
        owasp="A03:2021",
    ),
    # Configuration
    Rule(
        id="jwt-none-algorithm",
        name="JWT None Algorithm",
        severity=Severity.CRITICAL,
        pattern=r"algorithm['\":\s]*['\"]?none['\"]?",
        flags=re.IGNORECASE,
        message='JWT with "none" algorithm allows signature bypass',
        cwe="CWE-347",
        owasp="A02:2021",
    ),
    Rule(
        id="cors-wildcard",
        name="CORS Wildcard",
        severity=Severity.MEDIUM,
        pattern=r"Access-Control-Allow-Origin['\":\s]*['\"]\*['\"]",
        flags=re.IGNORECASE,
        message="CORS allows all origins. Consider restricting to specific domains",
        cwe="CWE-942",
        owasp="A05:2021",
    ),
    Rule(
        id="console-log",
        name="Console Log",
        severity=Severity.INFO,
        pattern=r"console\.(log|debug|info|warn|error)\s*\(",
        message="Console statement found. Remove before production",
        cwe="CWE-489",
    ),
    Rule(
        id="security-disabled",
        name="Security Disabled",
        severity=Severity.HIGH,
        pattern=r"(?:verify|rejectUnauthorized|secure|checkServerIdentity)\s*[=:]\s*false",
        flags=re.IGNORECASE,
        message="Security check explicitly disabled",
        cwe="CWE-295",
        owasp="A07:2021",
    ),
)

LANGUAGE_MAP: dict[str, tuple[str, ...]] = {
    "javascript": (".js", ".mjs", ".cjs"),
    "typescript": (".ts", ".mts", ".cts"),
    "jsx": (".jsx",),
    "tsx": (".tsx",),
    "python": (".py",),
    "java": (".java",),
    "csharp": (".cs",),
    "go": (".go",),
    "ruby": (".rb",),
    "php": (".php",),
}

EXTENSION_TO_LANGUAGE = {
    ext: language for language, extensions in LANGUAGE_MAP.items() for ext in extensions
}


def detect_language(file_path: str) -> str | None:
    """Map a file path to its language by lowercase extension."""
    dot = file_path.rfind(".")
    if dot == -1 or "/" in file_path[dot:]:
        return None
    return EXTENSION_TO_LANGUAGE.get(file_path[dot:].lower())
