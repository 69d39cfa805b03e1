from .frame_codec import FrameCodec as FrameCodec
from .local_stub import LocalStub as LocalStub
from .models import Request as Request, Response as Response
from .remote_stub import RemoteStub as RemoteStub
from .rpc_server import RPCServer as RPCServer
