"""
Prompt Templates
Fixed templates sent to the chat models. Placeholders: {context}, {question}.
"""

QUICK_QA_PROMPT = """Use the following context to answer the question.
Context:
{context}

Question: {question}"""


DOCUMENT_QA_PROMPT = """You are a precise and factual assistant.
Use only the information provided in the context below to answer the question.

--------------------
Context:
{context}
--------------------

Question:
{question}

--------------------
Instructions:
1. Answer concisely and accurately based only on the given context.
2. If the answer is found, include the document name(s) or metadata you used.
3. If the context does not contain the answer, respond exactly as:
   "I reviewed <N> documents, but none contained the answer. Document name(s): <document name(s)>"
4. Do not make assumptions or invent information.
--------------------
"""
