"""Request identity shared by the static and rendered extractors."""

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

# Sent on every outbound page request. User-Agent is set separately on the
# browser context, so it is kept out of the extra headers there.
EXTRA_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

REQUEST_HEADERS = {"User-Agent": USER_AGENT, **EXTRA_HEADERS}
