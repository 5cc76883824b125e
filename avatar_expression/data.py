"""
Recorded landmark sessions and JSON Lines serialization.

A session file holds one JSON object per detection cycle:

    {"t_ms": 1234.5, "faces": [[[x, y], [x, y], ...]]}

`faces` is empty when the tracker found nobody. Sessions let the pipeline
be replayed and tested without a camera.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union
from pathlib import Path

from .landmarks import LandmarkFrame


@dataclass
class RecordedFrame:
    """
    One detection cycle from a recorded session.

    Attributes:
        t_ms: Detection timestamp in milliseconds.
        faces: Zero or more landmark frames seen in this cycle.
    """

    t_ms: float
    faces: List[LandmarkFrame] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the cycle to a dictionary for JSON serialization.

        Returns:
            Dictionary representation of the cycle.
        """
        return {
            "t_ms": self.t_ms,
            "faces": [face.to_list() for face in self.faces],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecordedFrame":
        """
        Create a RecordedFrame from a dictionary.

        Faces may be lists of [x, y] pairs or lists of {"x", "y"} keypoints.

        Raises:
            KeyError: If t_ms is missing.
            ValueError: If a face has the wrong shape.
        """
        t_ms = float(data["t_ms"])
        faces = [
            LandmarkFrame.from_points(points, timestamp_ms=t_ms)
            for points in data.get("faces", [])
        ]
        return cls(t_ms=t_ms, faces=faces)


@dataclass
class LandmarkRecording:
    """
    Ordered collection of recorded detection cycles.

    Attributes:
        frames: Recorded cycles in arrival order.
    """

    frames: List[RecordedFrame] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self) -> Iterator[RecordedFrame]:
        return iter(self.frames)

    def add(self, t_ms: float, faces: Optional[List[LandmarkFrame]] = None) -> None:
        """Append one detection cycle."""
        self.frames.append(RecordedFrame(t_ms=t_ms, faces=list(faces or [])))

    def save(self, path: Union[str, Path]) -> None:
        """
        Save the recording as JSON Lines.

        Args:
            path: File path to save to.
        """
        with open(path, 'w', encoding='utf-8') as f:
            for frame in self.frames:
                f.write(json.dumps(frame.to_dict()))
                f.write("\n")

    @classmethod
    def load(cls, path: Union[str, Path]) -> "LandmarkRecording":
        """
        Load a recording from a JSON Lines file. Blank lines are skipped.

        Args:
            path: File path to load from.

        Returns:
            New LandmarkRecording instance.

        Raises:
            ValueError: If a line is not valid JSON, lacks t_ms, or holds
                        a malformed keypoint.
        """
        frames = []
        with open(path, 'r', encoding='utf-8') as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    frames.append(RecordedFrame.from_dict(json.loads(line)))
                except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                    raise ValueError(f"{path}:{line_no}: invalid frame record: {e}")
        return cls(frames=frames)
