import os
import sys
from pathlib import Path

import uvicorn

# 添加当前目录到Python路径
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

# 加载 .env 文件 (强制覆盖已存在的环境变量)，必须在导入 settings 之前
env_file = Path(__file__).parent / ".env"
if env_file.exists():
    from dotenv import load_dotenv
    load_dotenv(env_file, override=True)

from dashhub.main import create_app  # noqa: E402

app = create_app()


if __name__ == "__main__":
    # 调度注册表是进程内状态，只能单进程运行
    uvicorn.run("server:app", host="0.0.0.0", port=8000, workers=1, timeout_keep_alive=120)
