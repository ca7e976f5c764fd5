"""
Dockerfile scanner tests - one finding per check, at the first offending line.
"""

from anchor.rules.base import Severity
from anchor.scanners.dockerfile import DOCKERFILE_CHECKS, is_dockerfile, scan_dockerfile

GOOD_DOCKERFILE = """FROM node:20.11.0-alpine
WORKDIR /app
COPY package.json .
RUN npm ci
USER node
HEALTHCHECK CMD curl -f http://localhost/ || exit 1
CMD ["node", "server.js"]
"""


def rules_for(make_project, content: str, name: str = "Dockerfile") -> dict:
    root = make_project({name: content})
    return {f.rule: f for f in scan_dockerfile(root, [name])}


class TestDockerfileScanner:
    """Tests for scan_dockerfile."""

    def test_minimal_dockerfile(self, make_project):
        """Bare FROM with no tag, no USER, no HEALTHCHECK."""
        findings = rules_for(make_project, "FROM node\nRUN npm install\nCMD [\"node\", \"app.js\"]\n")

        assert len(findings) >= 3
        assert findings["docker-root-user"].line is None
        assert findings["docker-root-user"].severity is Severity.HIGH
        assert findings["docker-latest-tag"].line == 1
        assert findings["docker-latest-tag"].message == 'Base image "node" uses unpinned version'
        assert "docker-healthcheck" in findings

    def test_good_dockerfile_clean(self, make_project):
        assert rules_for(make_project, GOOD_DOCKERFILE) == {}

    def test_user_root_still_flagged(self, make_project):
        findings = rules_for(make_project, GOOD_DOCKERFILE.replace("USER node", "USER root"))
        assert "docker-root-user" in findings

    def test_latest_tag(self, make_project):
        findings = rules_for(make_project, GOOD_DOCKERFILE.replace("node:20.11.0-alpine", "node:latest"))
        assert findings["docker-latest-tag"].line == 1

    def test_digest_pinned_image(self, make_project):
        pinned = GOOD_DOCKERFILE.replace("node:20.11.0-alpine", "node@sha256:abcdef")
        assert "docker-latest-tag" not in rules_for(make_project, pinned)

    def test_env_secret(self, make_project):
        content = GOOD_DOCKERFILE.replace("WORKDIR /app", "ENV DB_PASSWORD=supersecret")
        findings = rules_for(make_project, content)

        assert findings["docker-env-secrets"].severity is Severity.CRITICAL
        assert findings["docker-env-secrets"].line == 2

    def test_env_reference_not_secret(self, make_project):
        content = GOOD_DOCKERFILE.replace("WORKDIR /app", "ARG DB_PASSWORD=$BUILD_PASSWORD")
        assert "docker-env-secrets" not in rules_for(make_project, content)

    def test_curl_pipe_bash(self, make_project):
        content = GOOD_DOCKERFILE.replace("RUN npm ci", "RUN curl -sL https://example.com/setup.sh | bash")
        findings = rules_for(make_project, content)
        assert findings["docker-curl-pipe-bash"].line == 4

    def test_apt_without_cleanup(self, make_project):
        content = GOOD_DOCKERFILE.replace("RUN npm ci", "RUN apt-get update && apt-get install -y git")
        findings = rules_for(make_project, content)
        assert findings["docker-apt-clean"].severity is Severity.INFO

    def test_apt_with_cleanup(self, make_project):
        content = GOOD_DOCKERFILE.replace(
            "RUN npm ci", "RUN apt-get install -y git && rm -rf /var/lib/apt/lists/*"
        )
        assert "docker-apt-clean" not in rules_for(make_project, content)

    def test_add_local_file(self, make_project):
        content = GOOD_DOCKERFILE.replace("COPY package.json .", "ADD package.json .")
        assert rules_for(make_project, content)["docker-add-instead-of-copy"].line == 3

    def test_add_remote_archive_allowed(self, make_project):
        content = GOOD_DOCKERFILE.replace("COPY package.json .", "ADD https://example.com/app.tar.gz /opt/")
        assert "docker-add-instead-of-copy" not in rules_for(make_project, content)

    def test_many_exposed_ports(self, make_project):
        content = GOOD_DOCKERFILE + "EXPOSE 80 443 8080\nEXPOSE 8443/tcp 9000 9090\n"
        finding = rules_for(make_project, content)["docker-expose-all"]
        assert finding.message == "6 ports exposed - review if all are necessary"

    def test_non_dockerfiles_ignored(self, make_project):
        root = make_project({"README.md": "FROM node\n"})
        assert scan_dockerfile(root, ["README.md"]) == []


class TestDockerfileDetection:
    def test_is_dockerfile(self):
        assert is_dockerfile("Dockerfile")
        assert is_dockerfile("services/api/Dockerfile.prod")
        assert is_dockerfile("build/api.dockerfile")
        assert not is_dockerfile("docs/readme.md")

    def test_ten_checks(self):
        ids = [check.id for check in DOCKERFILE_CHECKS]
        assert len(ids) == len(set(ids)) == 10
