"""Face comparison service built on dlib, OpenCV and FastAPI"""

__version__ = "1.0.0"
