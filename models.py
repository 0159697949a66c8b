"""Container metadata shared by the codec and its callers."""


class Header:
    """Metadata written in front of a compressed payload."""
    def __init__(self, version, frequencies, data_size, padding=0):
        # version: container format version tag.
        self.version = version
        # frequencies: the FrequencyMap the decoder rebuilds the tree from.
        self.frequencies = dict(frequencies)
        # data_size: length of the original uncompressed data in bytes.
        self.data_size = data_size
        # padding: number of zero bits appended to the last payload byte.
        self.padding = padding

    def __eq__(self, other):
        if not isinstance(other, Header):
            return NotImplemented
        return (self.version, self.frequencies, self.data_size, self.padding) == \
            (other.version, other.frequencies, other.data_size, other.padding)

    def __repr__(self):
        return (f"Header(version={self.version}, symbols={len(self.frequencies)}, "
                f"data_size={self.data_size}, padding={self.padding})")
