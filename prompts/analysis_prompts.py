#!/usr/bin/env python3
"""
分析提示詞管理
系統提示詞依輸出欄位宣告組裝，措辭可自由調整，輸出格式約束不可省略
"""

import json
from typing import Any, Dict, List

from models.analysis_models import AnalysisLanguage, SchemaField


class AnalysisPrompts:
    """海報分析的提示詞管理類"""

    # 人設
    PERSONA = """你是一位毒辣的观察家，擅长从图片细节中挖掘人的独特性。

【绝对禁令 - 出现以下情况视为失败】
1. 禁止使用：沉默、寡言、内向、外向、不善表达、需要多沟通、打开自己
2. 禁止给出"心理健康建议"或"性格改进建议"
3. 禁止用"虽然...但是..."的转折句式

【强制流程 - 必须按顺序执行】
1. 【观察】列出图片中3个你实际看到的具体细节（颜色、物品、文字、构图）
2. 【矛盾】找出这3个细节之间的冲突或不协调之处
3. 【推断】基于这个矛盾，推断一个反直觉的性格特征
4. 【对标】找一个与用户气质相近的具体人物
5. 【天赋】指出一个与"沟通/表达"完全无关的隐藏能力

【风格要求】
- 用比喻代替形容词（不说"敏感"，说"像一台调频过宽的收音机"）
- 语气像老朋友吐槽，带点幽默感
- 每个分析必须独一无二，不能套用任何模板"""

    # 輸出格式約束
    OUTPUT_CONTRACT = """【输出格式 - 纯净JSON】
只输出一个 JSON 对象，且只包含以下键，值均为字符串：
{fields}

不要输出 JSON 以外的任何文字，不要使用 markdown 代码块。"""

    NO_REFLECTION = {
        "zh": "用户没有提供文字描述，请完全基于图片进行分析。",
        "en": "The user did not provide any text. Base the analysis entirely on the images.",
    }

    REFLECTION_PREFIX = {
        "zh": "用户自述：",
        "en": "User reflection: ",
    }

    LANGUAGE_DIRECTIVE = {
        "zh": "请使用简体中文撰写所有字段。",
        "en": "Write every field in English. Treat the character counts above as approximate word counts.",
    }

    @classmethod
    def _format_fields(cls, schema: List[SchemaField]) -> str:
        """每個欄位一行：鍵名、目標字數、內容要求"""
        lines = [
            f'- "{f.key}": 约{f.target_length}字，{f.directive}' for f in schema
        ]
        return "\n".join(lines)

    @classmethod
    def build_system_prompt(cls, schema: List[SchemaField]) -> str:
        """生成系統提示詞"""
        contract = cls.OUTPUT_CONTRACT.format(fields=cls._format_fields(schema))
        example = json.dumps(
            {f.key: "..." for f in schema}, ensure_ascii=False, indent=2
        )
        return f"{cls.PERSONA}\n\n{contract}\n\n示例结构：\n{example}"

    @classmethod
    def build_user_text(cls, reflection: str, language: str) -> str:
        """生成使用者訊息的文字部分"""
        lang = language if language in cls.LANGUAGE_DIRECTIVE else AnalysisLanguage.ZH.value
        if reflection:
            body = f"{cls.REFLECTION_PREFIX[lang]}{reflection}"
        else:
            body = cls.NO_REFLECTION[lang]
        return f"{body}\n\n{cls.LANGUAGE_DIRECTIVE[lang]}"

    @classmethod
    def build_messages(
        cls,
        schema: List[SchemaField],
        reflection: str,
        language: str,
        image_urls: List[str],
    ) -> List[Dict[str, Any]]:
        """組合 chat completion 的 messages"""
        user_content: List[Dict[str, Any]] = [
            {"type": "text", "text": cls.build_user_text(reflection, language)}
        ]
        user_content.extend(
            {"type": "image_url", "image_url": {"url": url}} for url in image_urls
        )

        return [
            {"role": "system", "content": cls.build_system_prompt(schema)},
            {"role": "user", "content": user_content},
        ]
