import heapq
import itertools
import logging

log = logging.getLogger(__name__)


### HUFFMAN NODE CLASS ###
class Node:
    """Represents a node in the Huffman tree."""
    def __init__(self, byte=None, freq=0, left=None, right=None):
        # byte: The byte value (0-255). None for internal nodes.
        self.byte = byte
        # freq: The byte's count, or the combined count of the children.
        self.freq = freq
        self.left = left
        self.right = right

    def is_leaf(self):
        return self.left is None and self.right is None

    def __repr__(self):
        if self.is_leaf():
            return f"Node(byte={self.byte}, freq={self.freq})"
        return f"Node(freq={self.freq})"


### PRIORITY QUEUE ###
class PriorityQueue:
    """
    Binary min-heap over arbitrary items.

    Items are ordered by key(item) and then by the order they were pushed,
    so two items with the same key always come out first-in first-out.
    The items themselves are never compared.
    """
    def __init__(self, key):
        self._key = key
        self._heap = []
        self._sequence = itertools.count()

    def __len__(self):
        return len(self._heap)

    def push(self, item):
        heapq.heappush(self._heap, (self._key(item), next(self._sequence), item))

    def pop(self):
        return heapq.heappop(self._heap)[2]


### TREE ###
class Tree:
    """A finished Huffman tree and the code table derived from it."""
    def __init__(self, root, code_table):
        self.root = root
        self.code_table = code_table

    def weighted_path_length(self, frequencies=None):
        """Sum of frequency x code length over all leaves."""
        if frequencies is None:
            frequencies = {byte: freq for byte, freq in self.leaves()}
        return sum(frequencies[byte] * len(code) for byte, code in self.code_table.items())

    def leaves(self):
        """Yield (byte, freq) for every leaf, left to right."""
        stack = [self.root] if self.root is not None else []
        while stack:
            node = stack.pop()
            if node.is_leaf():
                yield node.byte, node.freq
            else:
                stack.append(node.right)
                stack.append(node.left)


### TREE AND CODE GENERATION ###
def build_tree(frequencies):
    """
    Builds the Huffman tree and code table for a frequency map.

    Entries with a zero count are dropped first; they never get a code.

    Ties between equal frequencies are broken by insertion order: leaves go
    into the queue in ascending byte order, and every merged node is queued
    after everything already in it. The first node popped becomes the left
    child. Any encoder and decoder that share a frequency map therefore
    rebuild the same tree.
    """
    symbols = _validated(frequencies)

    # Handle edge case: empty input or only one unique byte
    if not symbols:
        return Tree(None, {})
    if len(symbols) == 1:
        # A lone symbol still needs a one-bit code
        byte, freq = symbols[0]
        return Tree(Node(byte=byte, freq=freq), {byte: "0"})

    priority_queue = PriorityQueue(key=lambda node: node.freq)
    for byte, freq in symbols:
        priority_queue.push(Node(byte=byte, freq=freq))

    # Repeatedly merge the two lowest frequency nodes
    while len(priority_queue) > 1:
        left = priority_queue.pop()
        right = priority_queue.pop()
        priority_queue.push(Node(freq=left.freq + right.freq, left=left, right=right))

    root = priority_queue.pop()
    code_table = generate_codes(root)
    log.debug("Built Huffman tree: %d symbols, root frequency %d", len(code_table), root.freq)
    return Tree(root, code_table)


def generate_codes(root):
    """
    Walk the tree and label the higher-frequency child '0' and the other '1'.

    Children are swapped in place where needed so that afterwards `left`
    is always the '0' branch; decoders walk the tree with that assumption.
    """
    codes = {}
    if root is None:
        return codes
    if root.is_leaf():
        codes[root.byte] = "0"
        return codes

    def generate_codes_recursive(node, current_code):
        if node.is_leaf():
            codes[node.byte] = current_code
            return
        if node.left.freq < node.right.freq:
            node.left, node.right = node.right, node.left
        generate_codes_recursive(node.left, current_code + "0")
        generate_codes_recursive(node.right, current_code + "1")

    generate_codes_recursive(root, "")
    return codes


def _validated(frequencies):
    symbols = []
    for byte, freq in frequencies.items():
        if isinstance(byte, bool) or not isinstance(byte, int) or not 0 <= byte <= 255:
            raise ValueError(f"frequency map key must be a byte value 0-255, got {byte!r}")
        if freq < 0:
            raise ValueError(f"negative count {freq} for byte {byte}")
        if freq:
            symbols.append((byte, freq))
    return sorted(symbols)
