# catalog_crawler/duplicates.py


class DuplicateDetector:
    """
    Remember every URL seen during one crawl run.

    Matching is byte-exact on the URL string, with no normalization. State is
    append-only and the detector is not thread-safe; the crawl loop is the
    only caller.
    """

    def __init__(self):
        self._seen = set()
        self._rejected = 0

    def is_duplicate(self, url):
        """
        Check a URL and record it.

        Args:
            url (str): Candidate URL

        Returns:
            bool: False on first occurrence (the URL is then marked as seen),
                True for every later occurrence of the same string
        """
        if url in self._seen:
            self._rejected += 1
            return True
        self._seen.add(url)
        return False

    @property
    def unique_count(self):
        return len(self._seen)

    @property
    def rejected_count(self):
        return self._rejected
