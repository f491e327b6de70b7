# scripts/load_test.py
import asyncio
import httpx

BASE_URL = "http://127.0.0.1:8000"

SAMPLES = [
    "Bom dia, poderia informar o status do protocolo 2024-778812?",
    "Olá, o sistema apresenta erro de login desde ontem.",
    "Segue em anexo o contrato assinado.",
    "Feliz Natal a toda a equipe!",
    "Hello, could you check ticket #A1B2C3?",
]


async def classify(client: httpx.AsyncClient, idx: int) -> None:
    text = SAMPLES[idx % len(SAMPLES)]
    r = await client.post(f"{BASE_URL}/api/v1/classify", json={"text": text})
    body = r.json() if r.status_code == 200 else {}
    print(f"[agent {idx}] /classify -> {r.status_code} {body.get('category')}/{body.get('subtype')}")


async def main():
    async with httpx.AsyncClient(timeout=10.0) as client:
        tasks = [classify(client, i) for i in range(10)]
        await asyncio.gather(*tasks)


if __name__ == "__main__":
    asyncio.run(main())
